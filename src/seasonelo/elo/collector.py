"""
Event collection for season replays.

Gathers everything that affects ratings inside one season's window:

- matches with start <= date <= end, ascending by date
- tournaments with start <= date <= end, ascending by date
- the participant set (every winner and loser of the collected matches)

Soft-deleted events are excluded through the repository predicate. Ties on
date are broken by primary key, i.e. insertion order, so two collections of
the same data always come back in the same order.

Tournament winners who never played a match in the season are not
participants: they get a bonus snapshot but no season_start seed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple

from sqlalchemy import select
from sqlalchemy.orm import Session

from seasonelo.db.models import Match, Season, Tournament
from seasonelo.db.repository import active


class InvalidEventError(ValueError):
    """Raised when a season contains a record the replay cannot fold."""
    pass


class MatchEvent(NamedTuple):
    """Lightweight match record loaded for replay."""
    id: int
    date: int
    winner_id: int
    loser_id: int
    tournament_id: int | None


class TournamentEvent(NamedTuple):
    """Lightweight tournament record loaded for replay."""
    id: int
    date: int
    winner_id: int


@dataclass
class SeasonEvents:
    """Chronological events of one season, ready to fold."""
    season_id: int
    season_start: int
    season_end: int
    matches: list[MatchEvent] = field(default_factory=list)
    tournaments: list[TournamentEvent] = field(default_factory=list)

    @property
    def participants(self) -> list[int]:
        """Winner/loser ids across all matches, in order of first appearance."""
        seen: dict[int, None] = {}
        for match in self.matches:
            seen.setdefault(match.winner_id, None)
            seen.setdefault(match.loser_id, None)
        return list(seen)


def load_season_matches(session: Session, season: Season) -> list[MatchEvent]:
    """Non-deleted matches inside the season window, oldest first."""
    stmt = (
        select(
            Match.id,
            Match.date,
            Match.winner_id,
            Match.loser_id,
            Match.tournament_id,
        )
        .where(active(Match))
        .where(Match.date >= season.start, Match.date <= season.end)
        .order_by(Match.date.asc(), Match.id.asc())
    )

    matches = []
    for row in session.execute(stmt):
        if row.winner_id == row.loser_id:
            raise InvalidEventError(
                f"Match {row.id} has the same player ({row.winner_id}) as winner and loser"
            )
        matches.append(MatchEvent(
            id=row.id,
            date=row.date,
            winner_id=row.winner_id,
            loser_id=row.loser_id,
            tournament_id=row.tournament_id,
        ))
    return matches


def load_season_tournaments(session: Session, season: Season) -> list[TournamentEvent]:
    """Non-deleted tournaments inside the season window, oldest first."""
    stmt = (
        select(Tournament.id, Tournament.date, Tournament.winner_id)
        .where(active(Tournament))
        .where(Tournament.date >= season.start, Tournament.date <= season.end)
        .order_by(Tournament.date.asc(), Tournament.id.asc())
    )
    return [
        TournamentEvent(id=row.id, date=row.date, winner_id=row.winner_id)
        for row in session.execute(stmt)
    ]


def collect_season_events(session: Session, season: Season) -> SeasonEvents:
    """
    Load all rating-affecting events for a season.

    Args:
        session: SQLAlchemy session
        season: The (already validated, non-deleted) season

    Returns:
        SeasonEvents with sorted matches and tournaments

    Raises:
        InvalidEventError: if a match cannot be replayed
    """
    return SeasonEvents(
        season_id=season.id,
        season_start=season.start,
        season_end=season.end,
        matches=load_season_matches(session, season),
        tournaments=load_season_tournaments(session, season),
    )
