"""
Season rating module.

Implements the per-season rating system:
- Flat-fraction point transfer per match, plus a fixed win bonus
- Tournament-win bonus applied after the season's matches
- Deterministic season replay into immutable snapshots
- Read-time inactivity decay (never stored)
"""

from seasonelo.elo.calculator import MatchResult, RatingParams, match_result, tournament_bonus
from seasonelo.elo.collector import InvalidEventError, SeasonEvents, collect_season_events
from seasonelo.elo.decay import inactivity_penalty
from seasonelo.elo.projection import (
    HistoryEntry,
    LeaderboardEntry,
    PlayerSeasonStats,
    RatingProjection,
    get_player_season_stats,
    get_rating_history,
    project_current_rating,
    project_season_leaderboard,
)
from seasonelo.elo.replay import (
    ReplayResult,
    SeasonNotFoundError,
    SeasonReplayEngine,
    fold_season,
    recalculate_season,
)

__all__ = [
    "MatchResult",
    "RatingParams",
    "match_result",
    "tournament_bonus",
    "inactivity_penalty",
    "InvalidEventError",
    "SeasonEvents",
    "collect_season_events",
    "ReplayResult",
    "SeasonNotFoundError",
    "SeasonReplayEngine",
    "fold_season",
    "recalculate_season",
    "RatingProjection",
    "LeaderboardEntry",
    "HistoryEntry",
    "PlayerSeasonStats",
    "project_current_rating",
    "project_season_leaderboard",
    "get_rating_history",
    "get_player_season_stats",
]
