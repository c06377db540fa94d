"""
Query helpers shared by the rating engine and its collaborators.

Two concerns live here:

1. Soft-delete filtering. Players, seasons, tournaments and matches are
   never hard-deleted; every read goes through `active()` / `get_active()`
   so the `deleted` flag is checked in exactly one place.

2. The snapshot store. `SnapshotStore` is the only code that reads or
   writes `elo_snapshots`: range deletion ahead of a replay, bulk insert of
   a replay's output, latest-snapshot lookup for decay projection, and
   ordered history.
"""

from __future__ import annotations

from typing import Iterable, Optional, TypeVar

from sqlalchemy import ColumnElement, delete, func, select
from sqlalchemy.orm import Session

from seasonelo.db.models import EloSnapshot, Match, Player, Season, Tournament

SoftDeletable = TypeVar("SoftDeletable", Player, Season, Tournament, Match)


def active(model: type[SoftDeletable]) -> ColumnElement[bool]:
    """WHERE clause excluding soft-deleted rows of `model`."""
    return model.deleted.is_(False)


def get_active(
    session: Session,
    model: type[SoftDeletable],
    record_id: int,
) -> Optional[SoftDeletable]:
    """Fetch a row by primary key, or None if missing or soft-deleted."""
    record = session.get(model, record_id)
    if record is None or record.deleted:
        return None
    return record


def active_seasons(session: Session) -> list[Season]:
    """All non-deleted seasons, oldest first."""
    stmt = select(Season).where(active(Season)).order_by(Season.start, Season.id)
    return list(session.scalars(stmt))


def find_season_containing(session: Session, timestamp: int) -> Optional[Season]:
    """
    First non-deleted season whose [start, end] contains `timestamp`.

    Seasons are non-overlapping by convention; if they do overlap the one
    created first wins.
    """
    stmt = (
        select(Season)
        .where(active(Season))
        .where(Season.start <= timestamp, Season.end >= timestamp)
        .order_by(Season.id)
        .limit(1)
    )
    return session.scalars(stmt).first()


def _history_order():
    return (EloSnapshot.timestamp.asc(), EloSnapshot.sequence.asc(), EloSnapshot.id.asc())


class SnapshotStore:
    """Persistence for rating snapshots. Callers own the transaction."""

    def __init__(self, session: Session):
        self.session = session

    def delete_for_season(self, season_id: int, from_timestamp: int | None = None) -> int:
        """
        Delete a season's snapshots, optionally only those at or after
        `from_timestamp`.

        Returns:
            Number of rows deleted.
        """
        stmt = delete(EloSnapshot).where(EloSnapshot.season_id == season_id)
        if from_timestamp is not None:
            stmt = stmt.where(EloSnapshot.timestamp >= from_timestamp)
        result = self.session.execute(stmt.execution_options(synchronize_session="fetch"))
        return result.rowcount or 0

    def delete_for_player(self, player_id: int) -> int:
        """Delete every snapshot of a player across all seasons."""
        stmt = delete(EloSnapshot).where(EloSnapshot.player_id == player_id)
        result = self.session.execute(stmt.execution_options(synchronize_session="fetch"))
        return result.rowcount or 0

    def add_many(self, snapshots: Iterable[EloSnapshot]) -> int:
        batch = list(snapshots)
        self.session.add_all(batch)
        self.session.flush()
        return len(batch)

    def latest_for_player(self, player_id: int, season_id: int) -> Optional[EloSnapshot]:
        """Most recent snapshot (by timestamp, then fold order) for a player in a season."""
        stmt = (
            select(EloSnapshot)
            .where(EloSnapshot.player_id == player_id, EloSnapshot.season_id == season_id)
            .order_by(
                EloSnapshot.timestamp.desc(),
                EloSnapshot.sequence.desc(),
                EloSnapshot.id.desc(),
            )
            .limit(1)
        )
        return self.session.scalars(stmt).first()

    def latest_per_player(self, season_id: int) -> list[EloSnapshot]:
        """
        Latest snapshot of every player who has one in the season.

        Walks the season in history order and keeps the last row seen per
        player, so timestamp ties resolve the same way as latest_for_player().
        """
        latest: dict[int, EloSnapshot] = {}
        for snapshot in self.for_season(season_id):
            latest[snapshot.player_id] = snapshot
        return list(latest.values())

    def for_season(self, season_id: int) -> list[EloSnapshot]:
        stmt = (
            select(EloSnapshot)
            .where(EloSnapshot.season_id == season_id)
            .order_by(*_history_order())
        )
        return list(self.session.scalars(stmt))

    def history(self, player_id: int, season_id: int) -> list[EloSnapshot]:
        stmt = (
            select(EloSnapshot)
            .where(EloSnapshot.player_id == player_id, EloSnapshot.season_id == season_id)
            .order_by(*_history_order())
        )
        return list(self.session.scalars(stmt))

    def count_for_season(self, season_id: int) -> int:
        stmt = select(func.count(EloSnapshot.id)).where(EloSnapshot.season_id == season_id)
        return self.session.scalar(stmt) or 0

    def count_for_player(self, player_id: int) -> int:
        stmt = select(func.count(EloSnapshot.id)).where(EloSnapshot.player_id == player_id)
        return self.session.scalar(stmt) or 0

    def seasons_for_player(self, player_id: int) -> set[int]:
        stmt = select(EloSnapshot.season_id).where(EloSnapshot.player_id == player_id).distinct()
        return set(self.session.scalars(stmt))
