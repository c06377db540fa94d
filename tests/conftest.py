"""
Pytest configuration and fixtures.

This file is automatically loaded by pytest and provides
shared fixtures for all tests.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from seasonelo.db.models import Base, Match, Player, Season, Tournament

DAY_MS = 86_400_000


@pytest.fixture(scope="session")
def test_engine():
    """
    Create a test database engine.

    Uses SQLite in-memory for fast tests that don't need
    PostgreSQL-specific features. A single shared connection lets the
    FastAPI test client use it from its worker thread.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return engine


@pytest.fixture(scope="session")
def tables(test_engine):
    """
    Create all tables for testing.

    This fixture runs once per test session.
    """
    Base.metadata.create_all(test_engine)
    yield
    Base.metadata.drop_all(test_engine)


@pytest.fixture
def db_session(test_engine, tables):
    """
    Create a database session for a test.

    Each test gets its own session with automatic rollback,
    ensuring tests don't affect each other.
    """
    connection = test_engine.connect()
    transaction = connection.begin()

    Session = sessionmaker(bind=connection)
    session = Session()

    yield session

    session.close()
    transaction.rollback()
    connection.close()


class RecordingScheduler:
    """Scheduler stand-in that records requests instead of running replays."""

    def __init__(self):
        self.calls: list[tuple[int, int | None]] = []

    def schedule(self, season_id, from_timestamp=None):
        self.calls.append((season_id, from_timestamp))


@pytest.fixture
def scheduler():
    return RecordingScheduler()


@pytest.fixture
def make_player(db_session):
    def _make(name="Player", role="player", email=None, deleted=False):
        player = Player(name=name, role=role, email=email, deleted=deleted)
        db_session.add(player)
        db_session.flush()
        return player
    return _make


@pytest.fixture
def make_season(db_session):
    def _make(start=0, end=1_000_000, name="Season", deleted=False):
        season = Season(name=name, start=start, end=end, deleted=deleted)
        db_session.add(season)
        db_session.flush()
        return season
    return _make


@pytest.fixture
def make_match(db_session):
    def _make(winner, loser, date, tournament=None, deleted=False):
        match = Match(
            winner_id=winner.id,
            loser_id=loser.id,
            date=date,
            tournament_id=tournament.id if tournament is not None else None,
            deleted=deleted,
        )
        db_session.add(match)
        db_session.flush()
        return match
    return _make


@pytest.fixture
def make_tournament(db_session):
    def _make(winner, date, name="Open", deleted=False):
        tournament = Tournament(name=name, date=date, winner_id=winner.id, deleted=deleted)
        db_session.add(tournament)
        db_session.flush()
        return tournament
    return _make
