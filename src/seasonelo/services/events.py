"""
Write paths for matches and tournaments.

Every mutation validates its input, writes the row, flushes (so ids and
dates are visible to the trigger's season lookup), then notifies the
RecalculationTrigger. The caller owns the transaction; queued replays are
handed to the scheduler when it commits and dropped if it rolls back.

Deletes are soft: the row keeps its id and history but the `deleted` flag
removes it from every replay and read.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Hashable, Iterable, Mapping, NamedTuple, Optional

from sqlalchemy.orm import Session

from seasonelo.db.models import Match, Player, Tournament
from seasonelo.db.repository import get_active
from seasonelo.elo.collector import InvalidEventError
from seasonelo.services.triggers import RecalculationTrigger

logger = logging.getLogger(__name__)


class EventNotFoundError(LookupError):
    """Raised when a match or tournament to edit does not exist (or is deleted)."""


def _require_player(session: Session, player_id: int, role: str) -> Player:
    player = get_active(session, Player, player_id)
    if player is None:
        raise InvalidEventError(f"{role} {player_id} does not exist")
    return player


def _validate_pairing(session: Session, winner_id: int, loser_id: int) -> None:
    if winner_id == loser_id:
        raise InvalidEventError(f"Player {winner_id} cannot beat themselves")
    _require_player(session, winner_id, "Winner")
    _require_player(session, loser_id, "Loser")


def _require_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = get_active(session, Tournament, tournament_id)
    if tournament is None:
        raise EventNotFoundError(f"Tournament {tournament_id} not found")
    return tournament


def _require_match(session: Session, match_id: int) -> Match:
    match = get_active(session, Match, match_id)
    if match is None:
        raise EventNotFoundError(f"Match {match_id} not found")
    return match


# =============================================================================
# Matches
# =============================================================================

def create_match(
    session: Session,
    trigger: RecalculationTrigger,
    *,
    date: int,
    winner_id: int,
    loser_id: int,
    tournament_id: int | None = None,
) -> Match:
    _validate_pairing(session, winner_id, loser_id)
    if tournament_id is not None:
        _require_tournament(session, tournament_id)

    match = Match(date=date, winner_id=winner_id, loser_id=loser_id, tournament_id=tournament_id)
    session.add(match)
    session.flush()

    logger.info("Created match %s (%s beat %s at %s)", match.id, winner_id, loser_id, date)
    trigger.match_created(match)
    return match


def update_match(
    session: Session,
    trigger: RecalculationTrigger,
    match_id: int,
    *,
    date: int,
    winner_id: int,
    loser_id: int,
    tournament_id: int | None = None,
) -> Match:
    """Replace every editable field of a match and reschedule its season(s)."""
    match = _require_match(session, match_id)
    _validate_pairing(session, winner_id, loser_id)
    if tournament_id is not None:
        _require_tournament(session, tournament_id)

    old_date = match.date
    match.date = date
    match.winner_id = winner_id
    match.loser_id = loser_id
    match.tournament_id = tournament_id
    session.flush()

    logger.info("Updated match %s (date %s -> %s)", match.id, old_date, date)
    trigger.match_updated(old_date, match)
    return match


def delete_match(session: Session, trigger: RecalculationTrigger, match_id: int) -> Match:
    match = _require_match(session, match_id)
    match.deleted = True
    session.flush()

    logger.info("Deleted match %s", match.id)
    trigger.match_deleted(match)
    return match


# =============================================================================
# Tournaments
# =============================================================================

def create_tournament(
    session: Session,
    trigger: RecalculationTrigger,
    *,
    name: str,
    date: int,
    winner_id: int,
) -> Tournament:
    _require_player(session, winner_id, "Winner")

    tournament = Tournament(name=name, date=date, winner_id=winner_id)
    session.add(tournament)
    session.flush()

    logger.info("Created tournament %s '%s'", tournament.id, name)
    trigger.tournament_created(tournament)
    return tournament


def update_tournament(
    session: Session,
    trigger: RecalculationTrigger,
    tournament_id: int,
    *,
    name: str,
    date: int,
    winner_id: int,
) -> Tournament:
    tournament = _require_tournament(session, tournament_id)
    _require_player(session, winner_id, "Winner")

    old_date = tournament.date
    tournament.name = name
    tournament.date = date
    tournament.winner_id = winner_id
    session.flush()

    logger.info("Updated tournament %s (date %s -> %s)", tournament.id, old_date, date)
    trigger.tournament_updated(old_date, tournament)
    return tournament


def delete_tournament(
    session: Session,
    trigger: RecalculationTrigger,
    tournament_id: int,
) -> Tournament:
    """
    Soft-delete a tournament.

    Only the winner's bonus goes away; matches played in the tournament are
    still real results and keep counting.
    """
    tournament = _require_tournament(session, tournament_id)
    tournament.deleted = True
    session.flush()

    logger.info("Deleted tournament %s", tournament.id)
    trigger.tournament_deleted(tournament)
    return tournament


# =============================================================================
# Bracket import
# =============================================================================

class ImportedParticipant(NamedTuple):
    """A bracket entrant: an existing player, or a name to create one from."""
    name: str
    player_id: Optional[int] = None


class ImportedMatch(NamedTuple):
    """A bracket result keyed by participant; date falls back to the tournament's."""
    winner_key: Hashable
    loser_key: Hashable
    date: Optional[int] = None


@dataclass
class ImportResult:
    tournament: Tournament
    matches_imported: int = 0
    matches_skipped: int = 0
    players_created: list[Player] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"Tournament {self.tournament.id} '{self.tournament.name}': "
            f"{self.matches_imported} matches imported, {self.matches_skipped} skipped, "
            f"{len(self.players_created)} players created"
        )


def import_tournament_results(
    session: Session,
    trigger: RecalculationTrigger,
    *,
    name: str,
    date: int,
    winner_key: Hashable,
    participants: Mapping[Hashable, ImportedParticipant],
    matches: Iterable[ImportedMatch],
) -> ImportResult:
    """
    Save a whole bracket (tournament, its matches, new entrants) at once.

    Participants without a player_id become new players. Matches naming an
    unknown participant are skipped; a winner that cannot be resolved or a
    self-match aborts the import. Every season holding the tournament or one
    of its matches is queued for a replay.
    """
    player_ids: dict[Hashable, int] = {}
    new_players: dict[Hashable, Player] = {}
    for key, participant in participants.items():
        if participant.player_id is not None:
            player_ids[key] = _require_player(session, participant.player_id, "Participant").id
        else:
            new_players[key] = Player(name=participant.name, role="player")

    session.add_all(new_players.values())
    session.flush()
    player_ids.update({key: player.id for key, player in new_players.items()})
    created = list(new_players.values())

    winner_id = player_ids.get(winner_key)
    if winner_id is None:
        raise InvalidEventError(f"Could not resolve tournament winner {winner_key!r}")

    tournament = Tournament(name=name, date=date, winner_id=winner_id)
    session.add(tournament)
    session.flush()

    result = ImportResult(tournament=tournament, players_created=created)
    match_dates: set[int] = set()
    for imported in matches:
        match_winner = player_ids.get(imported.winner_key)
        match_loser = player_ids.get(imported.loser_key)
        if match_winner is None or match_loser is None:
            result.matches_skipped += 1
            continue
        if match_winner == match_loser:
            raise InvalidEventError(f"Bracket match has {imported.winner_key!r} beating themselves")
        match_date = imported.date if imported.date is not None else date
        match_dates.add(match_date)
        session.add(Match(
            date=match_date,
            tournament_id=tournament.id,
            winner_id=match_winner,
            loser_id=match_loser,
        ))
        result.matches_imported += 1
    session.flush()

    logger.info(result.summary())
    trigger.tournament_imported(tournament, match_dates)
    return result
