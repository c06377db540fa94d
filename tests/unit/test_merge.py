"""Unit tests for account merge."""

import pytest

from seasonelo.db.models import Match, Player, Tournament
from seasonelo.db.repository import SnapshotStore
from seasonelo.elo.replay import recalculate_season
from seasonelo.services.merge import MergeError, merge_players, preview_merge
from seasonelo.services.triggers import RecalculationTrigger


@pytest.fixture
def trigger(db_session, scheduler):
    return RecalculationTrigger(db_session, scheduler)


@pytest.fixture
def duplicate_setup(db_session, make_player, make_season, make_match, make_tournament):
    """'Sam (import)' duplicates 'Sam'; both played Opp in different seasons."""
    spring = make_season(start=0, end=999, name="Spring")
    summer = make_season(start=1_000, end=1_999, name="Summer")
    sam = make_player("Sam", email="sam@example.com")
    dup = make_player("Sam (import)")
    opp = make_player("Opp")

    make_match(sam, opp, date=100)
    make_match(dup, opp, date=1_100)
    make_match(opp, dup, date=1_200)
    make_tournament(dup, date=1_300)

    recalculate_season(db_session, spring.id)
    recalculate_season(db_session, summer.id)
    return spring, summer, sam, dup, opp


def test_preview_counts(db_session, duplicate_setup):
    _, summer, sam, dup, _ = duplicate_setup

    preview = preview_merge(db_session, dup.id, sam.id)

    assert (preview.matches_as_winner, preview.matches_as_loser) == (1, 1)
    assert preview.total_matches == 2
    assert preview.tournament_wins == 1
    assert preview.elo_snapshots == 4  # seed, win, loss, bonus
    assert preview.affected_season_ids == [summer.id]
    assert preview.to_dict()["counts"]["tournament_wins"] == 1


def test_merge_moves_everything_and_schedules_replays(db_session, trigger,
                                                      duplicate_setup):
    _, summer, sam, dup, opp = duplicate_setup

    merge_players(db_session, dup.id, sam.id, trigger)

    assert db_session.get(Player, dup.id).deleted is True
    assert SnapshotStore(db_session).count_for_player(dup.id) == 0
    for match in db_session.query(Match).all():
        assert dup.id not in (match.winner_id, match.loser_id)
    assert {t.winner_id for t in db_session.query(Tournament).all()} == {sam.id}
    assert trigger.pending == [(summer.id, None)]

    # Replaying the affected season now credits the target
    recalculate_season(db_session, summer.id)
    players = {s.player_id for s in SnapshotStore(db_session).for_season(summer.id)}
    assert players == {sam.id, opp.id}


def test_cannot_merge_players_who_met(db_session, trigger, make_player, make_match):
    a = make_player("A")
    b = make_player("B")
    make_match(a, b, date=10)

    with pytest.raises(MergeError, match="played each other"):
        merge_players(db_session, b.id, a.id, trigger)
    assert trigger.pending == []
    assert db_session.get(Player, b.id).deleted is False


def test_deleted_head_to_head_stays_with_source(db_session, trigger, make_player, make_match):
    a = make_player("A")
    b = make_player("B")
    old = make_match(a, b, date=10, deleted=True)

    merge_players(db_session, b.id, a.id, trigger)

    assert (old.winner_id, old.loser_id) == (a.id, b.id)


@pytest.mark.parametrize("case", ["self", "missing_source", "missing_target", "claimed"])
def test_invalid_merges(db_session, make_player, case):
    claimed = make_player("Claimed", email="c@example.com")
    other = make_player("Other")
    source, target = {
        "self": (other.id, other.id),
        "missing_source": (123_456, other.id),
        "missing_target": (other.id, 123_456),
        "claimed": (claimed.id, other.id),
    }[case]

    with pytest.raises(MergeError):
        preview_merge(db_session, source, target)
