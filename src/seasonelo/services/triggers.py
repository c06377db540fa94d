"""
Maps event mutations to season replays.

Every create/update/delete of a match or tournament invalidates the rating
history of the season containing it. The trigger finds that season and
queues it with the event's timestamp. When an edit moves an event from one
season to another, both seasons are queued.

Queued requests are held until the session commits, then handed to the
scheduler. The replay runs in its own session and only sees committed rows,
so scheduling any earlier would replay the season without the change. A
rollback drops the queue.

Events whose timestamp falls in no season are ignored (logged at debug).
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session, SessionTransaction

from seasonelo.db.models import Match, Season, Tournament
from seasonelo.db.repository import active_seasons, find_season_containing
from seasonelo.tasks.scheduler import Scheduler

logger = logging.getLogger(__name__)

ReplayRequest = tuple[int, Optional[int]]


class RecalculationTrigger:
    """
    Schedules season replays in response to event changes.

    Usage:
        trigger = RecalculationTrigger(session, scheduler)
        match = create_match(session, trigger, ...)
        session.commit()  # replays are scheduled here
    """

    def __init__(self, session: Session, scheduler: Scheduler):
        self.session = session
        self.scheduler = scheduler
        self._pending: list[ReplayRequest] = []
        event.listen(session, "after_commit", self._after_commit)
        event.listen(session, "after_soft_rollback", self._after_soft_rollback)

    @property
    def pending(self) -> list[ReplayRequest]:
        """Requests waiting for the session to commit, in request order."""
        return list(self._pending)

    def find_season_for(self, timestamp: int) -> Optional[Season]:
        return find_season_containing(self.session, timestamp)

    # -- matches --------------------------------------------------------------

    def match_created(self, match: Match) -> Optional[int]:
        return self._schedule_at(match.date)

    def match_updated(self, old_date: int, match: Match) -> list[int]:
        return self._schedule_moved(old_date, match.date)

    def match_deleted(self, match: Match) -> Optional[int]:
        return self._schedule_at(match.date)

    # -- tournaments ----------------------------------------------------------

    def tournament_created(self, tournament: Tournament) -> Optional[int]:
        return self._schedule_at(tournament.date)

    def tournament_updated(self, old_date: int, tournament: Tournament) -> list[int]:
        return self._schedule_moved(old_date, tournament.date)

    def tournament_deleted(self, tournament: Tournament) -> Optional[int]:
        return self._schedule_at(tournament.date)

    def tournament_imported(
        self,
        tournament: Tournament,
        match_dates: Iterable[int] = (),
    ) -> list[int]:
        """
        A bracket import: the tournament and its matches arrive together.

        Imported matches may carry their own dates, so every season touched
        by the tournament or one of its matches is queued from the earliest
        event that falls in it.
        """
        earliest: dict[int, int] = {}
        for timestamp in (tournament.date, *sorted(set(match_dates))):
            season = self.find_season_for(timestamp)
            if season is None:
                logger.debug("No season contains timestamp %s; nothing to replay", timestamp)
                continue
            if season.id not in earliest or timestamp < earliest[season.id]:
                earliest[season.id] = timestamp

        for season_id, timestamp in earliest.items():
            self._request(season_id, timestamp)
        return list(earliest)

    # -- bulk -----------------------------------------------------------------

    def seasons_affected(self, season_ids: Iterable[int]) -> list[int]:
        """Full replays of the given seasons (deduplicated, ascending)."""
        scheduled = sorted(set(season_ids))
        for season_id in scheduled:
            self._request(season_id, None)
        return scheduled

    def all_seasons(self) -> list[int]:
        """Full replay of every non-deleted season."""
        season_ids = [season.id for season in active_seasons(self.session)]
        logger.info("Scheduling full replay of %d seasons", len(season_ids))
        for season_id in season_ids:
            self._request(season_id, None)
        return season_ids

    # -- transaction hooks ----------------------------------------------------

    def _after_commit(self, session: Session) -> None:
        requests, self._pending = self._pending, []
        for season_id, from_timestamp in requests:
            self.scheduler.schedule(season_id, from_timestamp)

    def _after_soft_rollback(self, session: Session, previous_transaction: SessionTransaction) -> None:
        # A rolled back savepoint leaves the outer transaction to commit
        if previous_transaction.nested:
            return
        if self._pending:
            logger.debug("Rollback; dropping %d queued replays", len(self._pending))
        self._pending = []

    # -- internals ------------------------------------------------------------

    def _request(self, season_id: int, from_timestamp: Optional[int]) -> None:
        self._pending.append((season_id, from_timestamp))

    def _schedule_at(self, timestamp: int) -> Optional[int]:
        season = self.find_season_for(timestamp)
        if season is None:
            logger.debug("No season contains timestamp %s; nothing to replay", timestamp)
            return None
        self._request(season.id, timestamp)
        return season.id

    def _schedule_moved(self, old_timestamp: int, new_timestamp: int) -> list[int]:
        scheduled = []
        new_season = self.find_season_for(new_timestamp)
        if new_season is not None:
            # Moving within a season invalidates from whichever date is earlier
            from_timestamp = new_timestamp
            if new_season.contains(old_timestamp):
                from_timestamp = min(old_timestamp, new_timestamp)
            self._request(new_season.id, from_timestamp)
            scheduled.append(new_season.id)

        old_season = self.find_season_for(old_timestamp)
        if old_season is not None and (new_season is None or old_season.id != new_season.id):
            self._request(old_season.id, old_timestamp)
            scheduled.append(old_season.id)
        return scheduled
