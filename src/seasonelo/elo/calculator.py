"""
Rating calculator for matches and tournament wins.

Pure functions, no I/O and no state. All results are whole numbers: the
fractional parts are floored before they touch a rating.

Match formula:
    transferred = floor(R_loser * LOSS_FRACTION)
    R'_loser    = R_loser - transferred
    R'_winner   = R_winner + transferred + WIN_BONUS

Tournament bonus:
    bonus = floor(R_winner * TOURNAMENT_BONUS_FRACTION)

Neither function clamps. A loser with a small or negative rating can end up
below zero; that is current behaviour and callers must not "fix" it here.
"""

import math
from dataclasses import dataclass

from seasonelo.elo.constants import (
    INACTIVITY_PENALTY_FRACTION,
    INACTIVITY_PERIOD_DAYS,
    LOSS_FRACTION,
    STARTING_RATING,
    TOURNAMENT_BONUS_FRACTION,
    WIN_BONUS,
)


@dataclass(frozen=True)
class RatingParams:
    """
    All rating parameters in one object.

    Passed to SeasonReplayEngine and the projection helpers. The defaults
    are the production constants; tests and what-if replays can override
    individual values.
    """
    starting_rating: int = STARTING_RATING
    loss_fraction: float = LOSS_FRACTION
    win_bonus: int = WIN_BONUS
    tournament_bonus_fraction: float = TOURNAMENT_BONUS_FRACTION
    inactivity_period_days: int = INACTIVITY_PERIOD_DAYS
    inactivity_penalty_fraction: float = INACTIVITY_PENALTY_FRACTION


@dataclass(frozen=True)
class MatchResult:
    """
    Result of a single match calculation.

    Contains both new ratings and the number of points that moved from the
    loser to the winner (the winner additionally receives the win bonus).
    """
    new_winner_rating: int
    new_loser_rating: int
    points_transferred: int
    win_bonus: int = WIN_BONUS

    @property
    def points_gained(self) -> int:
        """Total change for the winner."""
        return self.points_transferred + self.win_bonus

    @property
    def points_lost(self) -> int:
        """Total change for the loser (as a positive number)."""
        return self.points_transferred


def match_result(
    winner_rating: int,
    loser_rating: int,
    loss_fraction: float = LOSS_FRACTION,
    win_bonus: int = WIN_BONUS,
) -> MatchResult:
    """
    Calculate the ratings after one match.

    Args:
        winner_rating: Winner's rating before the match
        loser_rating: Loser's rating before the match
        loss_fraction: Fraction of the loser's rating transferred
        win_bonus: Flat bonus added to the winner

    Returns:
        MatchResult with both new ratings and the transferred points

    Example:
        match_result(100, 100)
        # → MatchResult(new_winner_rating=110, new_loser_rating=92, points_transferred=8)
    """
    points_transferred = math.floor(loser_rating * loss_fraction)
    return MatchResult(
        new_winner_rating=winner_rating + points_transferred + win_bonus,
        new_loser_rating=loser_rating - points_transferred,
        points_transferred=points_transferred,
        win_bonus=win_bonus,
    )


def tournament_bonus(
    current_rating: int,
    bonus_fraction: float = TOURNAMENT_BONUS_FRACTION,
) -> int:
    """
    Bonus awarded to a tournament winner.

    Computed from the winner's current running rating, not their season
    starting rating.

    Example:
        tournament_bonus(110)  # → 8
    """
    return math.floor(current_rating * bonus_fraction)
