"""
SQLAlchemy ORM models for seasonelo.

The schema separates the event log (matches, tournaments) from the derived
rating history (elo_snapshots). Nothing on a player row holds a rating:
every rating a player has ever had in a season is a snapshot produced by a
season replay, and the only way to change one is to delete the season's
snapshots and replay again.

Key design decisions:
- All timestamps are epoch milliseconds stored as BIGINT
- Players, seasons, tournaments and matches are soft-deleted via `deleted`
- Snapshots carry a `sequence` (position in the replay fold) so rows sharing
  a timestamp still have a deterministic order
- Every replay invocation is recorded in replay_log

Tables:
- players: Player and judge accounts
- seasons: Time windows ratings are tracked in
- tournaments: Named events with one winner
- matches: Winner/loser pairings, optionally part of a tournament
- elo_snapshots: Rating history per player per season
- replay_log: Audit trail of season replays
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# =============================================================================
# Constants
# =============================================================================

PLAYER_ROLES = ("player", "judge")

SNAPSHOT_REASONS = ("season_start", "match_win", "match_loss", "tournament_bonus")


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# =============================================================================
# Player Models
# =============================================================================

class Player(Base):
    """
    A player or judge account.

    Judges record matches; both roles can appear on leaderboards if they
    have played. Ratings are never stored here, see EloSnapshot.
    """
    __tablename__ = "players"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(10), nullable=False, default="player")
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        CheckConstraint("role IN ('player', 'judge')", name="ck_players_role"),
    )

    def __repr__(self) -> str:
        return f"<Player(id={self.id}, name='{self.name}', role='{self.role}')>"


# =============================================================================
# Season / Event Models
# =============================================================================

class Season(Base):
    """
    A time window [start, end] (epoch ms, inclusive) ratings are tracked in.

    Seasons are non-overlapping by convention only. Every player starts each
    season at the baseline rating.
    """
    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    start: Mapped[int] = mapped_column(BigInteger, nullable=False)
    end: Mapped[int] = mapped_column(BigInteger, nullable=False)

    deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_seasons_range", "start", "end"),
    )

    def contains(self, timestamp: int) -> bool:
        """Whether a timestamp falls inside this season (both ends inclusive)."""
        return self.start <= timestamp <= self.end

    def __repr__(self) -> str:
        return f"<Season(id={self.id}, name='{self.name}', start={self.start}, end={self.end})>"


class Tournament(Base):
    """A named event with exactly one declared winner."""
    __tablename__ = "tournaments"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    winner_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)

    deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    winner: Mapped["Player"] = relationship(foreign_keys=[winner_id])
    matches: Mapped[list["Match"]] = relationship(back_populates="tournament")

    __table_args__ = (
        Index("idx_tournaments_date", "date"),
        Index("idx_tournaments_winner", "winner_id"),
    )

    def __repr__(self) -> str:
        return f"<Tournament(id={self.id}, name='{self.name}', date={self.date})>"


class Match(Base):
    """
    A single result: one winner, one loser, a timestamp.

    Matches imported from a bracket reference their tournament; casual
    matches have no tournament.
    """
    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(primary_key=True)
    date: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tournament_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tournaments.id"), nullable=True
    )
    winner_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    loser_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)

    deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default="false", nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    tournament: Mapped[Optional["Tournament"]] = relationship(back_populates="matches")
    winner: Mapped["Player"] = relationship(foreign_keys=[winner_id])
    loser: Mapped["Player"] = relationship(foreign_keys=[loser_id])

    __table_args__ = (
        Index("idx_matches_date", "date"),
        Index("idx_matches_winner", "winner_id"),
        Index("idx_matches_loser", "loser_id"),
        Index("idx_matches_tournament", "tournament_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Match(id={self.id}, date={self.date}, "
            f"winner_id={self.winner_id}, loser_id={self.loser_id})>"
        )


# =============================================================================
# Rating Models
# =============================================================================

class EloSnapshot(Base):
    """
    A player's rating at one point in a season, and why it changed.

    Written only by the season replay engine. `reason` and `delta` together
    encode the tagged reason (see seasonelo.elo.reasons): delta is the signed
    change applied by this event, NULL for the season_start seed.
    """
    __tablename__ = "elo_snapshots"

    id: Mapped[int] = mapped_column(primary_key=True)
    player_id: Mapped[int] = mapped_column(ForeignKey("players.id"), nullable=False)
    season_id: Mapped[int] = mapped_column(ForeignKey("seasons.id"), nullable=False)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Position in the replay fold; orders snapshots that share a timestamp
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    match_id: Mapped[Optional[int]] = mapped_column(ForeignKey("matches.id"), nullable=True)
    tournament_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("tournaments.id"), nullable=True
    )

    reason: Mapped[str] = mapped_column(String(20), nullable=False)
    delta: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    player: Mapped["Player"] = relationship()

    __table_args__ = (
        Index("idx_elo_snapshots_player_season", "player_id", "season_id", "timestamp"),
        Index("idx_elo_snapshots_season", "season_id", "timestamp"),
        Index("idx_elo_snapshots_match", "match_id"),
        CheckConstraint(
            "reason IN ('season_start', 'match_win', 'match_loss', 'tournament_bonus')",
            name="ck_elo_snapshots_reason",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<EloSnapshot(player_id={self.player_id}, season_id={self.season_id}, "
            f"rating={self.rating}, timestamp={self.timestamp}, reason='{self.reason}')>"
        )


# =============================================================================
# Operations Models
# =============================================================================

class ReplayLog(Base):
    """
    Audit log for season replays.

    One row per replay invocation, successful or not, so a failed replay
    (which leaves the previous snapshots in place) can be followed up.
    """
    __tablename__ = "replay_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    season_id: Mapped[int] = mapped_column(Integer, nullable=False)
    from_timestamp: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    players_processed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    matches_processed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    details: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    duration_seconds: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 3), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_replay_log_season_date", "season_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<ReplayLog(season_id={self.season_id}, success={self.success})>"
