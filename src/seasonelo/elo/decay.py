"""
Inactivity decay for season ratings.

A player who stops playing loses a compounding fraction of their rating for
every full inactivity period since their last rating event. The decay is
never stored: it is recomputed from the latest snapshot every time a rating
is read, so a displayed rating can drop from one day to the next without any
write happening.

Formula:
    days    = (min(now, season_end) - last_activity) / MS_PER_DAY
    periods = floor(days / INACTIVITY_PERIOD_DAYS)        (0 if days < period)
    penalty = floor(base - base * (1 - INACTIVITY_PENALTY_FRACTION) ** periods)

Decay is stepped, not continuous, and stops at the end of the season.
"""

import math

from seasonelo.elo.constants import (
    INACTIVITY_PENALTY_FRACTION,
    INACTIVITY_PERIOD_DAYS,
    MS_PER_DAY,
)


def inactivity_penalty(
    base_rating: int,
    last_activity_timestamp: int,
    now: int,
    season_end: int,
    period_days: int = INACTIVITY_PERIOD_DAYS,
    penalty_fraction: float = INACTIVITY_PENALTY_FRACTION,
) -> int:
    """
    Points to subtract from a stored rating for inactivity.

    Args:
        base_rating: Rating stored on the player's latest snapshot
        last_activity_timestamp: Timestamp (ms) of that snapshot
        now: Current time (ms)
        season_end: End of the season (ms); decay never projects past it
        period_days: Days per inactivity period
        penalty_fraction: Fraction removed per whole period, compounded

    Returns:
        Penalty as a non-negative whole number for non-negative ratings

    Examples:
        # 59 days inactive (still within the first period) - no penalty
        inactivity_penalty(100, 0, 59 * MS_PER_DAY, 10**10)  # → 0

        # Exactly one period - 8% off
        inactivity_penalty(100, 0, 60 * MS_PER_DAY, 10**10)  # → 8
    """
    effective_now = min(now, season_end)
    days_since = (effective_now - last_activity_timestamp) / MS_PER_DAY

    if days_since < period_days:
        return 0

    periods = math.floor(days_since / period_days)

    # Applied step by step so results match the stepwise definition exactly
    working = float(base_rating)
    for _ in range(periods):
        working = working * (1 - penalty_fraction)

    return math.floor(base_rating - working)
