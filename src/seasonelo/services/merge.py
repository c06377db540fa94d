"""
Account merge: fold a duplicate (non-claimed) player into another account.

Use this when the same person was entered twice, typically once by hand and
once by a bracket import. Everything the source player did (matches won and
lost, tournament wins) is moved to the target, the source's snapshots are
dropped, the source is soft-deleted, and every season the source took part
in is replayed from scratch so the target's history includes the moved
results.

A merge is refused when the two players have met each other: the moved
match would become a player beating themselves.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.orm import Session

from seasonelo.db.models import Match, Player, Tournament
from seasonelo.db.repository import SnapshotStore, active, find_season_containing, get_active
from seasonelo.services.triggers import RecalculationTrigger

logger = logging.getLogger(__name__)


class MergeError(ValueError):
    """Raised when two accounts cannot be merged."""


@dataclass
class MergePreview:
    """What a merge would move, computed without changing anything."""
    source: Player
    target: Player
    matches_as_winner: int = 0
    matches_as_loser: int = 0
    tournament_wins: int = 0
    elo_snapshots: int = 0
    affected_season_ids: list[int] = field(default_factory=list)

    @property
    def total_matches(self) -> int:
        return self.matches_as_winner + self.matches_as_loser

    def to_dict(self) -> dict:
        return {
            "source": {"id": self.source.id, "name": self.source.name, "role": self.source.role},
            "target": {"id": self.target.id, "name": self.target.name, "role": self.target.role},
            "counts": {
                "matches_as_winner": self.matches_as_winner,
                "matches_as_loser": self.matches_as_loser,
                "tournament_wins": self.tournament_wins,
                "elo_snapshots": self.elo_snapshots,
            },
            "affected_season_ids": self.affected_season_ids,
        }


def _load_pair(session: Session, source_id: int, target_id: int) -> tuple[Player, Player]:
    if source_id == target_id:
        raise MergeError("Cannot merge a player into themselves")

    source = get_active(session, Player, source_id)
    if source is None:
        raise MergeError(f"Source player {source_id} not found")
    target = get_active(session, Player, target_id)
    if target is None:
        raise MergeError(f"Target player {target_id} not found")

    if source.email:
        raise MergeError(f"Source player {source_id} is a claimed account and cannot be merged")

    head_to_head = session.scalars(
        select(Match.id)
        .where(active(Match))
        .where(or_(
            and_(Match.winner_id == source_id, Match.loser_id == target_id),
            and_(Match.winner_id == target_id, Match.loser_id == source_id),
        ))
    ).all()
    if head_to_head:
        raise MergeError(
            f"Players {source_id} and {target_id} played each other in "
            f"{len(head_to_head)} match(es) {sorted(head_to_head)}; merging would create self-matches"
        )
    return source, target


def _affected_seasons(session: Session, source_id: int) -> list[int]:
    """Seasons holding any of the source's snapshots or active events."""
    season_ids = SnapshotStore(session).seasons_for_player(source_id)

    event_dates = list(session.scalars(
        select(Match.date)
        .where(active(Match))
        .where(or_(Match.winner_id == source_id, Match.loser_id == source_id))
    ).all())
    event_dates += session.scalars(
        select(Tournament.date)
        .where(active(Tournament))
        .where(Tournament.winner_id == source_id)
    ).all()

    for date in set(event_dates):
        season = find_season_containing(session, date)
        if season is not None:
            season_ids.add(season.id)
    return sorted(season_ids)


def _count(session: Session, stmt) -> int:
    return session.scalar(select(func.count()).select_from(stmt.subquery())) or 0


def preview_merge(session: Session, source_id: int, target_id: int) -> MergePreview:
    """
    Validate a merge and report what it would move.

    Raises:
        MergeError: If the merge is not allowed
    """
    source, target = _load_pair(session, source_id, target_id)
    return MergePreview(
        source=source,
        target=target,
        matches_as_winner=_count(
            session, select(Match.id).where(active(Match), Match.winner_id == source_id)
        ),
        matches_as_loser=_count(
            session, select(Match.id).where(active(Match), Match.loser_id == source_id)
        ),
        tournament_wins=_count(
            session, select(Tournament.id).where(active(Tournament), Tournament.winner_id == source_id)
        ),
        elo_snapshots=SnapshotStore(session).count_for_player(source_id),
        affected_season_ids=_affected_seasons(session, source_id),
    )


def merge_players(
    session: Session,
    source_id: int,
    target_id: int,
    trigger: RecalculationTrigger,
) -> MergePreview:
    """
    Merge `source_id` into `target_id` and schedule replays.

    The caller commits. Returns the preview computed before the merge.

    Raises:
        MergeError: If the merge is not allowed
    """
    preview = preview_merge(session, source_id, target_id)

    # Soft-deleted matches move too, except a deleted head-to-head, which
    # would become a self-match and stays on the source
    session.execute(
        update(Match)
        .where(Match.winner_id == source_id, Match.loser_id != target_id)
        .values(winner_id=target_id)
        .execution_options(synchronize_session="fetch")
    )
    session.execute(
        update(Match)
        .where(Match.loser_id == source_id, Match.winner_id != target_id)
        .values(loser_id=target_id)
        .execution_options(synchronize_session="fetch")
    )
    session.execute(
        update(Tournament)
        .where(Tournament.winner_id == source_id)
        .values(winner_id=target_id)
        .execution_options(synchronize_session="fetch")
    )

    deleted = SnapshotStore(session).delete_for_player(source_id)
    preview.source.deleted = True
    session.flush()

    logger.info(
        "Merged player %s into %s: %d matches, %d tournament wins, %d snapshots dropped",
        source_id, target_id, preview.total_matches, preview.tournament_wins, deleted,
    )
    trigger.seasons_affected(preview.affected_season_ids)
    return preview
