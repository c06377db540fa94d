"""Unit tests for snapshot reason variants."""

import pytest

from seasonelo.elo.reasons import MatchLoss, MatchWin, SeasonStart, TournamentBonus, from_stored


def test_stored_form_of_each_variant():
    assert (SeasonStart().reason, SeasonStart().delta) == ("season_start", None)
    assert (MatchWin(10).reason, MatchWin(10).delta) == ("match_win", 10)
    assert (MatchLoss(8).reason, MatchLoss(8).delta) == ("match_loss", -8)
    assert (TournamentBonus(9).reason, TournamentBonus(9).delta) == ("tournament_bonus", 9)


def test_from_stored_rebuilds_variants():
    assert from_stored("season_start", None) == SeasonStart()
    assert from_stored("match_win", 10) == MatchWin(points_gained=10)
    assert from_stored("match_loss", -8) == MatchLoss(points_lost=8)
    assert from_stored("tournament_bonus", 9) == TournamentBonus(bonus=9)


def test_from_stored_rejects_unknown_reason():
    with pytest.raises(ValueError, match="Unknown snapshot reason"):
        from_stored("inactivity", -3)
