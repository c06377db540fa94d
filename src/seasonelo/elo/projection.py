"""
Read-time rating projection.

Stored snapshots never include inactivity decay. Every read takes the latest
stored snapshot and projects the rating "as of now" by subtracting the
inactivity penalty; the projection is never written back.

A player with no snapshot in a season has no rating there at all. That is
reported as None (or omission from the leaderboard), never as a rating of 0.
Missing or soft-deleted seasons and players are treated the same way.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from seasonelo.db.models import EloSnapshot, Match, Player, Season
from seasonelo.db.repository import SnapshotStore, active, get_active
from seasonelo.elo.calculator import RatingParams
from seasonelo.elo.decay import inactivity_penalty
from seasonelo.elo.reasons import SnapshotReason, from_stored


def current_time_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class RatingProjection:
    """A player's stored rating with decay applied."""
    base_rating: int
    penalty: int
    effective_rating: int
    last_activity_timestamp: int
    is_inactive: bool


@dataclass(frozen=True)
class LeaderboardEntry:
    player_id: int
    player_name: str
    base_rating: int
    penalty: int
    effective_rating: int
    last_activity_timestamp: int


@dataclass(frozen=True)
class HistoryEntry:
    """One snapshot as shown in a player's rating history."""
    rating: int
    timestamp: int
    match_id: Optional[int]
    tournament_id: Optional[int]
    reason: str
    delta: Optional[int]

    @property
    def cause(self) -> SnapshotReason:
        """The typed reason this snapshot was written."""
        return from_stored(self.reason, self.delta)


@dataclass(frozen=True)
class PlayerSeasonStats:
    """Win/loss record and rating summary of a player in one season."""
    wins: int
    losses: int
    total_matches: int
    win_rate: float
    current_rating: Optional[int]
    highest_rating: Optional[int]


def _project(
    snapshot: EloSnapshot,
    season: Season,
    now_ms: int,
    params: RatingParams,
) -> RatingProjection:
    penalty = inactivity_penalty(
        snapshot.rating,
        snapshot.timestamp,
        now_ms,
        season.end,
        period_days=params.inactivity_period_days,
        penalty_fraction=params.inactivity_penalty_fraction,
    )
    return RatingProjection(
        base_rating=snapshot.rating,
        penalty=penalty,
        effective_rating=snapshot.rating - penalty,
        last_activity_timestamp=snapshot.timestamp,
        is_inactive=penalty > 0,
    )


def project_current_rating(
    session: Session,
    player_id: int,
    season_id: int,
    now_ms: int | None = None,
    params: RatingParams | None = None,
) -> Optional[RatingProjection]:
    """
    Project a player's effective rating in a season.

    Args:
        session: SQLAlchemy session
        player_id: Player to project
        season_id: Season to project in
        now_ms: Current time in ms (defaults to the wall clock)

    Returns:
        RatingProjection, or None if the season/player is missing or
        soft-deleted, or the player has no snapshot in the season
    """
    season = get_active(session, Season, season_id)
    if season is None or get_active(session, Player, player_id) is None:
        return None

    snapshot = SnapshotStore(session).latest_for_player(player_id, season_id)
    if snapshot is None:
        return None

    if now_ms is None:
        now_ms = current_time_ms()
    return _project(snapshot, season, now_ms, params or RatingParams())


def project_season_leaderboard(
    session: Session,
    season_id: int,
    now_ms: int | None = None,
    limit: int | None = None,
    params: RatingParams | None = None,
) -> list[LeaderboardEntry]:
    """
    Rank every rated player of a season by effective (post-decay) rating.

    Players without snapshots are absent, not listed at 0. Ties are broken
    by name, then id, so the order is stable between reads.
    """
    season = get_active(session, Season, season_id)
    if season is None:
        return []

    if now_ms is None:
        now_ms = current_time_ms()
    params = params or RatingParams()

    latest = SnapshotStore(session).latest_per_player(season_id)
    if not latest:
        return []

    players = {
        p.id: p
        for p in session.scalars(
            select(Player)
            .where(active(Player))
            .where(Player.id.in_([s.player_id for s in latest]))
        )
    }

    entries = []
    for snapshot in latest:
        player = players.get(snapshot.player_id)
        if player is None:
            continue
        projection = _project(snapshot, season, now_ms, params)
        entries.append(LeaderboardEntry(
            player_id=player.id,
            player_name=player.name,
            base_rating=projection.base_rating,
            penalty=projection.penalty,
            effective_rating=projection.effective_rating,
            last_activity_timestamp=projection.last_activity_timestamp,
        ))

    entries.sort(key=lambda e: (-e.effective_rating, e.player_name, e.player_id))
    if limit is not None:
        return entries[:limit]
    return entries


def get_rating_history(session: Session, player_id: int, season_id: int) -> list[HistoryEntry]:
    """A player's snapshots in a season, oldest first (stored values, no decay)."""
    if get_active(session, Season, season_id) is None:
        return []

    return [
        HistoryEntry(
            rating=s.rating,
            timestamp=s.timestamp,
            match_id=s.match_id,
            tournament_id=s.tournament_id,
            reason=s.reason,
            delta=s.delta,
        )
        for s in SnapshotStore(session).history(player_id, season_id)
    ]


def get_player_season_stats(
    session: Session,
    player_id: int,
    season_id: int,
    now_ms: int | None = None,
    params: RatingParams | None = None,
) -> Optional[PlayerSeasonStats]:
    """
    Wins, losses and rating summary for a player in a season.

    current_rating is the decayed rating; highest_rating is the best stored
    snapshot. Both are None when the player has no snapshot in the season.
    """
    season = get_active(session, Season, season_id)
    if season is None or get_active(session, Player, player_id) is None:
        return None

    in_season = (
        select(Match.winner_id)
        .where(active(Match))
        .where(Match.date >= season.start, Match.date <= season.end)
        .where(or_(Match.winner_id == player_id, Match.loser_id == player_id))
    )
    winner_ids = list(session.scalars(in_season))
    wins = sum(1 for winner_id in winner_ids if winner_id == player_id)
    losses = len(winner_ids) - wins
    total = wins + losses

    highest = session.scalar(
        select(func.max(EloSnapshot.rating))
        .where(EloSnapshot.player_id == player_id, EloSnapshot.season_id == season_id)
    )
    projection = project_current_rating(session, player_id, season_id, now_ms, params)

    return PlayerSeasonStats(
        wins=wins,
        losses=losses,
        total_matches=total,
        win_rate=wins / total if total else 0.0,
        current_rating=projection.effective_rating if projection else None,
        highest_rating=highest,
    )
