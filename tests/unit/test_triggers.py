"""Unit tests for mapping event changes to season replays."""

from contextlib import contextmanager
from functools import partial

import pytest
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import sessionmaker

from seasonelo.db.models import Base, EloSnapshot, Player, Season
from seasonelo.services.events import create_match
from seasonelo.services.triggers import RecalculationTrigger
from seasonelo.tasks.scheduler import ReplayScheduler, run_replay_job


@pytest.fixture
def trigger(db_session, scheduler):
    return RecalculationTrigger(db_session, scheduler)


def test_created_match_schedules_its_season(trigger, make_player, make_season, make_match):
    spring = make_season(start=0, end=999)
    summer = make_season(start=1_000, end=1_999)
    a, b = make_player("A"), make_player("B")
    match = make_match(a, b, date=1_250)

    season_id = trigger.match_created(match)

    assert season_id == summer.id != spring.id
    assert trigger.pending == [(summer.id, 1_250)]


def test_event_outside_every_season_is_ignored(trigger, make_player, make_season,
                                               make_tournament):
    make_season(start=0, end=999)
    tournament = make_tournament(make_player("A"), date=5_000)

    assert trigger.tournament_created(tournament) is None
    assert trigger.pending == []


def test_deleted_season_is_skipped(trigger, make_player, make_season, make_match):
    make_season(start=0, end=999, deleted=True)
    live = make_season(start=0, end=999)
    match = make_match(make_player("A"), make_player("B"), date=10)

    trigger.match_deleted(match)

    assert trigger.pending == [(live.id, 10)]


def test_overlapping_seasons_pick_the_first(trigger, make_season):
    first = make_season(start=0, end=999)
    make_season(start=500, end=1_500)

    assert trigger.find_season_for(700).id == first.id


def test_update_across_seasons_schedules_both(trigger, make_player, make_season, make_match):
    old = make_season(start=0, end=999)
    new = make_season(start=1_000, end=1_999)
    match = make_match(make_player("A"), make_player("B"), date=1_500)

    scheduled = trigger.match_updated(200, match)

    assert scheduled == [new.id, old.id]
    assert trigger.pending == [(new.id, 1_500), (old.id, 200)]


def test_update_within_season_uses_earlier_date(trigger, make_player, make_season,
                                                make_tournament):
    season = make_season(start=0, end=999)
    tournament = make_tournament(make_player("A"), date=800)

    trigger.tournament_updated(300, tournament)

    assert trigger.pending == [(season.id, 300)]


def test_update_out_of_all_seasons(trigger, make_player, make_season, make_match):
    season = make_season(start=0, end=999)
    match = make_match(make_player("A"), make_player("B"), date=50_000)

    trigger.match_updated(100, match)

    assert trigger.pending == [(season.id, 100)]


def test_import_queues_every_season_its_matches_touch(trigger, make_player, make_season,
                                                      make_tournament):
    spring = make_season(start=0, end=999)
    summer = make_season(start=1_000, end=1_999)
    tournament = make_tournament(make_player("A"), date=1_200)

    scheduled = trigger.tournament_imported(tournament, [1_100, 900, 950, 7_000])

    assert scheduled == [summer.id, spring.id]
    assert trigger.pending == [(summer.id, 1_100), (spring.id, 900)]


def test_seasons_affected_are_full_replays(trigger):
    scheduled = trigger.seasons_affected([3, 1, 3])

    assert scheduled == [1, 3]
    assert trigger.pending == [(1, None), (3, None)]


def test_all_seasons(trigger, make_season):
    a = make_season(start=0, end=10)
    make_season(start=20, end=30, deleted=True)
    b = make_season(start=40, end=50)

    trigger.all_seasons()

    assert trigger.pending == [(a.id, None), (b.id, None)]


def test_nothing_reaches_the_scheduler_before_commit(trigger, scheduler, make_player,
                                                     make_season, make_match):
    make_season(start=0, end=999)
    trigger.match_created(make_match(make_player("A"), make_player("B"), date=10))

    assert scheduler.calls == []


class TestCommitHooks:
    """Requests only leave the trigger once the mutation is committed."""

    @pytest.fixture
    def file_sessions(self, tmp_path):
        engine = create_engine(
            f"sqlite:///{tmp_path / 'ratings.db'}",
            connect_args={"check_same_thread": False},
        )
        Base.metadata.create_all(engine)
        yield sessionmaker(bind=engine)
        engine.dispose()

    @pytest.fixture
    def seeded(self, file_sessions):
        with file_sessions() as session:
            season = Season(name="Autumn", start=0, end=10_000)
            a, b = Player(name="A", role="player"), Player(name="B", role="player")
            session.add_all([season, a, b])
            session.commit()
            return season.id, a.id, b.id

    def test_commit_hands_requests_to_scheduler(self, file_sessions, seeded, scheduler):
        season_id, a_id, b_id = seeded
        with file_sessions() as session:
            trigger = RecalculationTrigger(session, scheduler)
            create_match(session, trigger, date=400, winner_id=a_id, loser_id=b_id)
            assert scheduler.calls == []

            session.commit()

        assert scheduler.calls == [(season_id, 400)]
        assert trigger.pending == []

    def test_rollback_drops_requests(self, file_sessions, seeded, scheduler):
        _, a_id, b_id = seeded
        with file_sessions() as session:
            trigger = RecalculationTrigger(session, scheduler)
            create_match(session, trigger, date=400, winner_id=a_id, loser_id=b_id)
            session.rollback()

            session.commit()

        assert scheduler.calls == []
        assert trigger.pending == []

    def test_rolled_back_savepoint_keeps_outer_requests(self, file_sessions, seeded, scheduler):
        season_id, a_id, b_id = seeded
        with file_sessions() as session:
            trigger = RecalculationTrigger(session, scheduler)
            create_match(session, trigger, date=400, winner_id=a_id, loser_id=b_id)
            savepoint = session.begin_nested()
            savepoint.rollback()
            session.commit()

        assert scheduler.calls == [(season_id, 400)]

    def test_replay_sees_the_committed_match(self, file_sessions, seeded):
        season_id, a_id, b_id = seeded

        @contextmanager
        def scope():
            with file_sessions() as session:
                with session.begin():
                    yield session

        replays = ReplayScheduler(runner=partial(run_replay_job, session_scope=scope), max_workers=1)
        try:
            with file_sessions() as session:
                trigger = RecalculationTrigger(session, replays)
                create_match(session, trigger, date=400, winner_id=a_id, loser_id=b_id)
                assert not replays.is_busy(season_id)
                session.commit()

            assert replays.wait_idle(timeout=10)
        finally:
            replays.shutdown()

        with file_sessions() as session:
            count = session.scalar(
                select(func.count()).select_from(EloSnapshot)
                .where(EloSnapshot.season_id == season_id)
            )
        # Two seeds plus one snapshot per player for the match
        assert count == 4
