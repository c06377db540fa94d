"""Unit tests for snapshot persistence."""

import pytest

from seasonelo.db.models import EloSnapshot
from seasonelo.db.repository import SnapshotStore


@pytest.fixture
def store(db_session):
    return SnapshotStore(db_session)


@pytest.fixture
def add_snapshot(store):
    sequence = iter(range(1_000))

    def _add(player, season, timestamp, rating=100, reason="season_start", delta=None):
        snapshot = EloSnapshot(
            player_id=player.id,
            season_id=season.id,
            rating=rating,
            timestamp=timestamp,
            sequence=next(sequence),
            reason=reason,
            delta=delta,
        )
        store.add_many([snapshot])
        return snapshot
    return _add


class TestDeleteForSeason:

    def test_range_delete_is_inclusive_of_the_bound(self, store, add_snapshot, make_player,
                                                    make_season):
        season = make_season()
        a = make_player("A")
        for timestamp in (100, 200, 300, 400):
            add_snapshot(a, season, timestamp)

        deleted = store.delete_for_season(season.id, from_timestamp=300)

        assert deleted == 2
        assert [s.timestamp for s in store.for_season(season.id)] == [100, 200]

    def test_range_delete_leaves_other_seasons(self, store, add_snapshot, make_player,
                                               make_season):
        spring, summer = make_season(name="Spring"), make_season(name="Summer")
        a = make_player("A")
        add_snapshot(a, spring, 500)
        add_snapshot(a, summer, 500)

        store.delete_for_season(spring.id, from_timestamp=0)

        assert store.count_for_season(spring.id) == 0
        assert store.count_for_season(summer.id) == 1

    def test_without_bound_deletes_whole_season(self, store, add_snapshot, make_player,
                                                make_season):
        season = make_season()
        a = make_player("A")
        add_snapshot(a, season, 100)
        add_snapshot(a, season, 900, rating=110, reason="match_win", delta=10)

        assert store.delete_for_season(season.id) == 2
        assert store.count_for_season(season.id) == 0


def test_latest_for_player_breaks_timestamp_ties_by_sequence(store, add_snapshot, make_player,
                                                            make_season):
    season = make_season()
    a = make_player("A")
    add_snapshot(a, season, 100)
    add_snapshot(a, season, 500, rating=110, reason="match_win", delta=10)
    add_snapshot(a, season, 500, rating=102, reason="match_loss", delta=-8)

    assert store.latest_for_player(a.id, season.id).rating == 102
