"""
Fire-and-forget scheduling of season replays.

Committed mutations (match/tournament edits, merges, imports) reach
`ReplayScheduler.schedule(season_id, from_timestamp)` through the
RecalculationTrigger; the replay runs on a worker thread and the caller
never waits for it.

Replays of the same season never overlap. Each season has a single-flight
slot:

- nothing running      -> the replay is submitted
- a replay is running  -> the request is folded into one pending rerun that
                          starts when the current replay finishes

Pending requests coalesce to the earliest from_timestamp, or to a full
recompute if any request asked for one. Different seasons replay in
parallel up to `replay_max_workers`. There is no cancellation and no
timeout, and failed replays are logged (and recorded in replay_log) but not
retried; scheduling the season again is always safe.

Reads never wait on this scheduler and may see the previous snapshots until
the replay commits.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import AbstractContextManager
from dataclasses import dataclass
from decimal import Decimal
from time import perf_counter
from typing import Callable, Optional, Protocol

from sqlalchemy.orm import Session

from seasonelo.config import settings
from seasonelo.db.models import ReplayLog
from seasonelo.db.session import get_session
from seasonelo.elo.calculator import RatingParams
from seasonelo.elo.replay import ReplayResult, SeasonReplayEngine

logger = logging.getLogger(__name__)

ReplayRunner = Callable[[int, Optional[int]], object]
SessionScope = Callable[[], AbstractContextManager[Session]]


class Scheduler(Protocol):
    """Anything that can queue a season replay without blocking."""

    def schedule(self, season_id: int, from_timestamp: int | None = None) -> None:
        ...


def run_replay_job(
    season_id: int,
    from_timestamp: int | None = None,
    session_scope: SessionScope = get_session,
    params: RatingParams | None = None,
) -> ReplayResult:
    """
    Run one replay in its own transaction and record it in replay_log.

    The success row is written in the same transaction as the snapshots.
    On failure the transaction is rolled back (previous snapshots survive),
    a failure row is written in a fresh transaction, and the caught
    exception is re-raised.
    """
    started = perf_counter()
    try:
        with session_scope() as session:
            result = SeasonReplayEngine(params).recalculate(session, season_id, from_timestamp)
            session.add(ReplayLog(
                season_id=season_id,
                from_timestamp=from_timestamp,
                success=True,
                players_processed=result.players_processed,
                matches_processed=result.matches_processed,
                details={
                    "tournaments_processed": result.tournaments_processed,
                    "snapshots_written": result.snapshots_written,
                    "snapshots_deleted": result.snapshots_deleted,
                },
                duration_seconds=_elapsed(started),
            ))
    except Exception as exc:
        _record_failure(season_id, from_timestamp, exc, _elapsed(started), session_scope)
        raise
    return result


def _elapsed(started: float) -> Decimal:
    return Decimal(str(round(perf_counter() - started, 3)))


def _record_failure(
    season_id: int,
    from_timestamp: int | None,
    exc: Exception,
    duration: Decimal,
    session_scope: SessionScope,
) -> None:
    try:
        with session_scope() as session:
            session.add(ReplayLog(
                season_id=season_id,
                from_timestamp=from_timestamp,
                success=False,
                error_message=f"{type(exc).__name__}: {exc}",
                duration_seconds=duration,
            ))
    except Exception:
        logger.exception("Could not record failed replay of season %s", season_id)


@dataclass
class _SeasonSlot:
    """Single-flight state of one season while a replay is in progress."""
    pending: bool = False
    pending_full: bool = False
    pending_from: Optional[int] = None

    def request(self, from_timestamp: int | None) -> None:
        if from_timestamp is None:
            self.pending_full = True
        elif self.pending_from is None or from_timestamp < self.pending_from:
            self.pending_from = from_timestamp
        self.pending = True

    def take(self) -> Optional[int]:
        from_timestamp = None if self.pending_full else self.pending_from
        self.pending = False
        self.pending_full = False
        self.pending_from = None
        return from_timestamp


class ReplayScheduler:
    """
    Thread-pool scheduler with per-season single-flight.

    Usage:
        scheduler = ReplayScheduler()
        scheduler.schedule(season_id, from_timestamp=match.date)
        ...
        scheduler.shutdown()
    """

    def __init__(
        self,
        runner: ReplayRunner | None = None,
        max_workers: int | None = None,
    ) -> None:
        self._runner = runner or run_replay_job
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or settings.replay_max_workers,
            thread_name_prefix="season-replay",
        )
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._slots: dict[int, _SeasonSlot] = {}

    def schedule(self, season_id: int, from_timestamp: int | None = None) -> None:
        """Queue a replay of `season_id` and return immediately."""
        with self._lock:
            slot = self._slots.get(season_id)
            if slot is not None:
                slot.request(from_timestamp)
                logger.debug(
                    "Replay of season %s already running; queued rerun (from=%s)",
                    season_id, from_timestamp,
                )
                return
            self._slots[season_id] = _SeasonSlot()

        logger.debug("Scheduling replay of season %s (from=%s)", season_id, from_timestamp)
        try:
            self._executor.submit(self._drain, season_id, from_timestamp)
        except RuntimeError:
            # Executor already shut down; release the slot so the season is not stuck busy
            with self._lock:
                del self._slots[season_id]
                self._idle.notify_all()
            raise

    def is_busy(self, season_id: int) -> bool:
        with self._lock:
            return season_id in self._slots

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no replay is running or queued. Returns False on timeout."""
        with self._idle:
            return self._idle.wait_for(lambda: not self._slots, timeout=timeout)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _drain(self, season_id: int, from_timestamp: int | None) -> None:
        while True:
            self._run_once(season_id, from_timestamp)
            with self._lock:
                slot = self._slots[season_id]
                if not slot.pending:
                    del self._slots[season_id]
                    self._idle.notify_all()
                    return
                from_timestamp = slot.take()

    def _run_once(self, season_id: int, from_timestamp: int | None) -> None:
        try:
            self._runner(season_id, from_timestamp)
        except Exception:
            logger.exception(
                "Replay of season %s (from=%s) failed; ratings stay at the last successful replay",
                season_id, from_timestamp,
            )
