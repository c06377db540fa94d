"""
Season replay engine - rebuilds a season's rating history from its events.

A replay is a left fold over the season's chronological events:

1. Deleting: remove the season's existing snapshots (events are loaded
   first, so an unreplayable season fails before anything is removed)
2. Seeding: every match participant starts at STARTING_RATING, with one
   season_start snapshot at season.start
3. ReplayingMatches: apply match_result() to each match in date order and
   write a match_win and a match_loss snapshot
4. ReplayingTournamentBonuses: after all matches, apply tournament_bonus()
   to each tournament winner's running rating in date order and write a
   tournament_bonus snapshot
5. Done: report counts

The running rating per player exists only inside the fold. Nothing about a
player's rating is stored anywhere except the snapshots written here, so a
replay of unchanged events always produces the same snapshots.

from_timestamp:
    Triggers pass the earliest timestamp their mutation invalidated. The
    fold itself always starts at season.start (tournament bonuses depend on
    the ratings at the end of the whole match pass, so there is no safe
    resume point), which means every snapshot of the season is regenerated.
    The deletion is therefore widened to the whole season and
    from_timestamp is kept as an advisory hint for logging and the replay
    log.

Usage:
    with get_session() as session:
        result = recalculate_season(session, season_id)
        print(result.players_processed, result.matches_processed)
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from seasonelo.db.models import EloSnapshot, Season
from seasonelo.db.repository import SnapshotStore, get_active
from seasonelo.elo.calculator import RatingParams, match_result, tournament_bonus
from seasonelo.elo.collector import SeasonEvents, collect_season_events
from seasonelo.elo.reasons import (
    MatchLoss,
    MatchWin,
    SeasonStart,
    SnapshotReason,
    TournamentBonus,
)
from seasonelo.tasks.locks import acquire_season_replay_lock

logger = logging.getLogger(__name__)


class SeasonNotFoundError(LookupError):
    """Raised when a replay is requested for a missing or soft-deleted season."""
    pass


class SnapshotRow(NamedTuple):
    """One snapshot produced by the fold, before it is persisted."""
    player_id: int
    rating: int
    timestamp: int
    sequence: int
    reason: SnapshotReason
    match_id: Optional[int] = None
    tournament_id: Optional[int] = None


@dataclass
class ReplayResult:
    """Summary returned by SeasonReplayEngine.recalculate()."""
    season_id: int
    players_processed: int = 0
    matches_processed: int = 0
    tournaments_processed: int = 0
    snapshots_deleted: int = 0
    snapshots_written: int = 0
    from_timestamp: Optional[int] = None

    def summary(self) -> str:
        return (
            f"Season {self.season_id}: {self.players_processed} players, "
            f"{self.matches_processed} matches, {self.tournaments_processed} tournaments, "
            f"{self.snapshots_deleted} snapshots replaced by {self.snapshots_written}"
        )

    def to_dict(self) -> dict:
        return asdict(self)


def fold_season(events: SeasonEvents, params: RatingParams = RatingParams()) -> list[SnapshotRow]:
    """
    Replay a season's events in memory.

    Pure: the same events and params always give the same rows in the same
    order. Row `sequence` is the position in this list.

    Args:
        events: Sorted events from collect_season_events()
        params: Rating parameters

    Returns:
        Snapshot rows in fold order (seeds, then matches, then bonuses)
    """
    rows: list[SnapshotRow] = []
    ratings: dict[int, int] = {}

    def emit(player_id: int, rating: int, timestamp: int, reason: SnapshotReason, **refs) -> None:
        rows.append(SnapshotRow(
            player_id=player_id,
            rating=rating,
            timestamp=timestamp,
            sequence=len(rows),
            reason=reason,
            **refs,
        ))

    # --- Seeding ---
    for player_id in events.participants:
        ratings[player_id] = params.starting_rating
        emit(player_id, params.starting_rating, events.season_start, SeasonStart())

    # --- Matches ---
    for match in events.matches:
        result = match_result(
            ratings.get(match.winner_id, params.starting_rating),
            ratings.get(match.loser_id, params.starting_rating),
            loss_fraction=params.loss_fraction,
            win_bonus=params.win_bonus,
        )
        ratings[match.winner_id] = result.new_winner_rating
        ratings[match.loser_id] = result.new_loser_rating

        emit(
            match.winner_id, result.new_winner_rating, match.date,
            MatchWin(points_gained=result.points_gained),
            match_id=match.id,
        )
        emit(
            match.loser_id, result.new_loser_rating, match.date,
            MatchLoss(points_lost=result.points_lost),
            match_id=match.id,
        )

    # --- Tournament bonuses (second pass over post-match ratings) ---
    for tournament in events.tournaments:
        current = ratings.get(tournament.winner_id, params.starting_rating)
        bonus = tournament_bonus(current, bonus_fraction=params.tournament_bonus_fraction)
        ratings[tournament.winner_id] = current + bonus

        emit(
            tournament.winner_id, current + bonus, tournament.date,
            TournamentBonus(bonus=bonus),
            tournament_id=tournament.id,
        )

    return rows


def _to_model(season_id: int, row: SnapshotRow) -> EloSnapshot:
    return EloSnapshot(
        player_id=row.player_id,
        season_id=season_id,
        rating=row.rating,
        timestamp=row.timestamp,
        sequence=row.sequence,
        match_id=row.match_id,
        tournament_id=row.tournament_id,
        reason=row.reason.reason,
        delta=row.reason.delta,
    )


class SeasonReplayEngine:
    """
    Rebuilds the stored snapshot history of one season.

    Usage:
        engine = SeasonReplayEngine()
        result = engine.recalculate(session, season_id)
        session.commit()

    The caller owns the transaction. A replay either completes inside it or
    raises, in which case rolling back leaves the previous snapshots intact.
    """

    def __init__(self, params: RatingParams | None = None) -> None:
        self.params = params or RatingParams()

    def recalculate(
        self,
        session: Session,
        season_id: int,
        from_timestamp: int | None = None,
    ) -> ReplayResult:
        """
        Delete and regenerate all snapshots of a season.

        Args:
            session: Active SQLAlchemy session. Caller is responsible for commit.
            season_id: Season to replay
            from_timestamp: Earliest invalidated timestamp (advisory, see module doc)

        Returns:
            ReplayResult with counts of distinct players and matches processed

        Raises:
            SeasonNotFoundError: if the season does not exist or is soft-deleted
            InvalidEventError: if a season event cannot be replayed
        """
        season = get_active(session, Season, season_id)
        if season is None:
            raise SeasonNotFoundError(f"Season {season_id} not found")

        acquire_season_replay_lock(session, season_id)
        store = SnapshotStore(session)
        result = ReplayResult(season_id=season_id, from_timestamp=from_timestamp)

        events = collect_season_events(session, season)
        rows = fold_season(events, self.params)

        # --- Deleting ---
        if from_timestamp is not None and from_timestamp > season.start:
            logger.debug(
                "Season %s invalidated from %s; regenerating from season start %s",
                season_id, from_timestamp, season.start,
            )
        result.snapshots_deleted = store.delete_for_season(season_id)

        # --- Seeding / ReplayingMatches / ReplayingTournamentBonuses ---
        result.snapshots_written = store.add_many(_to_model(season_id, row) for row in rows)

        # --- Done ---
        result.players_processed = len(events.participants)
        result.matches_processed = len(events.matches)
        result.tournaments_processed = len(events.tournaments)

        logger.info(
            "Replayed season %s: %d players, %d matches, %d tournaments, "
            "%d snapshots written (%d deleted)",
            season_id,
            result.players_processed,
            result.matches_processed,
            result.tournaments_processed,
            result.snapshots_written,
            result.snapshots_deleted,
        )
        return result


def recalculate_season(
    session: Session,
    season_id: int,
    from_timestamp: int | None = None,
    params: RatingParams | None = None,
) -> ReplayResult:
    """Convenience wrapper around SeasonReplayEngine(params).recalculate()."""
    return SeasonReplayEngine(params).recalculate(session, season_id, from_timestamp)
