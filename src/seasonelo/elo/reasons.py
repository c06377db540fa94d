"""
Why a rating snapshot exists.

Each snapshot is explained by exactly one of four variants. The variants
carry only the field that makes sense for them, instead of one record with
several optional point fields.

Stored form (elo_snapshots.reason / elo_snapshots.delta):
    SeasonStart              -> ("season_start", NULL)
    MatchWin(points_gained)  -> ("match_win", +points_gained)
    MatchLoss(points_lost)   -> ("match_loss", -points_lost)
    TournamentBonus(bonus)   -> ("tournament_bonus", +bonus)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional, Union


@dataclass(frozen=True)
class SeasonStart:
    """Seed written for every participant at season start."""
    reason: ClassVar[str] = "season_start"

    @property
    def delta(self) -> Optional[int]:
        return None


@dataclass(frozen=True)
class MatchWin:
    reason: ClassVar[str] = "match_win"
    points_gained: int

    @property
    def delta(self) -> Optional[int]:
        return self.points_gained


@dataclass(frozen=True)
class MatchLoss:
    reason: ClassVar[str] = "match_loss"
    points_lost: int

    @property
    def delta(self) -> Optional[int]:
        return -self.points_lost


@dataclass(frozen=True)
class TournamentBonus:
    reason: ClassVar[str] = "tournament_bonus"
    bonus: int

    @property
    def delta(self) -> Optional[int]:
        return self.bonus


SnapshotReason = Union[SeasonStart, MatchWin, MatchLoss, TournamentBonus]


def from_stored(reason: str, delta: Optional[int]) -> SnapshotReason:
    """
    Rebuild the variant from the stored reason/delta columns.

    Raises:
        ValueError: if the reason string is unknown
    """
    if reason == SeasonStart.reason:
        return SeasonStart()
    if reason == MatchWin.reason:
        return MatchWin(points_gained=delta or 0)
    if reason == MatchLoss.reason:
        return MatchLoss(points_lost=-(delta or 0))
    if reason == TournamentBonus.reason:
        return TournamentBonus(bonus=delta or 0)
    raise ValueError(f"Unknown snapshot reason: {reason!r}")
