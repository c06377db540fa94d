"""Unit tests for the replay scheduler and replay job recording."""

import threading
from contextlib import contextmanager

import pytest

from seasonelo.db.models import ReplayLog
from seasonelo.elo.replay import SeasonNotFoundError
from seasonelo.tasks.scheduler import ReplayScheduler, run_replay_job


class BlockingRunner:
    """Runner whose first call per season blocks until released."""

    def __init__(self):
        self.calls = []
        self.started = threading.Event()
        self.release = threading.Event()
        self._lock = threading.Lock()
        self._active = 0
        self.max_active_per_season = 0

    def __call__(self, season_id, from_timestamp):
        with self._lock:
            self.calls.append((season_id, from_timestamp))
            self._active += 1
            self.max_active_per_season = max(self.max_active_per_season, self._active)
        self.started.set()
        self.release.wait(timeout=5)
        with self._lock:
            self._active -= 1


@pytest.fixture
def runner():
    return BlockingRunner()


@pytest.fixture
def replay_scheduler(runner):
    scheduler = ReplayScheduler(runner=runner, max_workers=4)
    yield scheduler
    runner.release.set()
    scheduler.shutdown(wait=True)


def test_schedule_returns_immediately_and_runs(replay_scheduler, runner):
    replay_scheduler.schedule(1, 500)

    assert runner.started.wait(timeout=5)
    assert replay_scheduler.is_busy(1)
    runner.release.set()
    assert replay_scheduler.wait_idle(timeout=5)
    assert runner.calls == [(1, 500)]
    assert not replay_scheduler.is_busy(1)


def test_requests_during_a_replay_coalesce_to_earliest(replay_scheduler, runner):
    replay_scheduler.schedule(1, 500)
    assert runner.started.wait(timeout=5)

    replay_scheduler.schedule(1, 900)
    replay_scheduler.schedule(1, 300)
    replay_scheduler.schedule(1, 700)
    runner.release.set()

    assert replay_scheduler.wait_idle(timeout=5)
    assert runner.calls == [(1, 500), (1, 300)]
    assert runner.max_active_per_season == 1


def test_full_request_wins_when_coalescing(replay_scheduler, runner):
    replay_scheduler.schedule(1, 500)
    assert runner.started.wait(timeout=5)

    replay_scheduler.schedule(1, 300)
    replay_scheduler.schedule(1, None)
    runner.release.set()

    assert replay_scheduler.wait_idle(timeout=5)
    assert runner.calls == [(1, 500), (1, None)]


def test_failed_replay_does_not_block_the_season():
    calls = []

    def flaky(season_id, from_timestamp):
        calls.append((season_id, from_timestamp))
        if len(calls) == 1:
            raise RuntimeError("database went away")

    scheduler = ReplayScheduler(runner=flaky, max_workers=1)
    try:
        scheduler.schedule(4)
        assert scheduler.wait_idle(timeout=5)
        scheduler.schedule(4, 10)
        assert scheduler.wait_idle(timeout=5)
    finally:
        scheduler.shutdown()

    assert calls == [(4, None), (4, 10)]


def test_schedule_after_shutdown_releases_the_slot():
    scheduler = ReplayScheduler(runner=lambda season_id, from_timestamp: None, max_workers=1)
    scheduler.shutdown()

    with pytest.raises(RuntimeError):
        scheduler.schedule(7)

    assert not scheduler.is_busy(7)
    assert scheduler.wait_idle(timeout=0.2)


class TestRunReplayJob:

    @pytest.fixture
    def session_scope(self, db_session):
        @contextmanager
        def _scope():
            yield db_session
            db_session.flush()
        return _scope

    def test_success_is_logged(self, db_session, session_scope, make_player, make_season,
                               make_match):
        season = make_season()
        make_match(make_player("A"), make_player("B"), date=10)

        result = run_replay_job(season.id, 10, session_scope=session_scope)

        log = db_session.query(ReplayLog).filter_by(season_id=season.id).one()
        assert log.success is True
        assert log.from_timestamp == 10
        assert (log.players_processed, log.matches_processed) == (2, 1)
        assert log.details["snapshots_written"] == result.snapshots_written == 4

    def test_failure_is_logged_and_raised(self, db_session, session_scope):
        with pytest.raises(SeasonNotFoundError):
            run_replay_job(55_555, session_scope=session_scope)

        log = db_session.query(ReplayLog).filter_by(season_id=55_555).one()
        assert log.success is False
        assert "SeasonNotFoundError" in log.error_message
