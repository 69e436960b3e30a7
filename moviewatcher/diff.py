"""Reconcile fetched schedules against cached snapshots."""

from __future__ import annotations

import datetime as dt
import logging
from typing import List, Optional, Protocol

from .models import MovieSchedule, ScheduleSnapshot, Showing

logger = logging.getLogger(__name__)


class ShowingCache(Protocol):
    """Per-movie snapshot storage used by :func:`reconcile`."""

    def get_snapshot(self, movie_id: int) -> Optional[ScheduleSnapshot]:
        ...

    def put_snapshot(self, snapshot: ScheduleSnapshot) -> None:
        ...


def reconcile(cache: ShowingCache, new_schedule: MovieSchedule) -> List[Showing]:
    """Return showings not seen before, updating the cache when needed.

    The first schedule seen for a movie only establishes a baseline. Empty
    schedules and schedules that add nothing leave the cache untouched.
    """
    movie_id = new_schedule.movie_id
    previous = cache.get_snapshot(movie_id)
    current_ids = new_schedule.showing_ids

    if previous is None:
        cache.put_snapshot(_snapshot_for(new_schedule))
        logger.info(
            "Stored baseline of %d showings for movie %s", len(current_ids), movie_id
        )
        return []

    if not current_ids:
        logger.info("Received no showings for movie %s; keeping snapshot", movie_id)
        return []

    if current_ids <= previous.showing_ids:
        logger.debug("No new showings for movie %s", movie_id)
        return []

    new_map = {showing.id: showing for showing in new_schedule.showings}
    added = [
        showing
        for showing_id, showing in new_map.items()
        if showing_id not in previous.showing_ids
    ]
    cache.put_snapshot(_snapshot_for(new_schedule))
    logger.info("Detected %d new showings for movie %s", len(added), movie_id)
    return sorted(added, key=Showing.sort_key)


def _snapshot_for(schedule: MovieSchedule) -> ScheduleSnapshot:
    return ScheduleSnapshot(
        movie_id=schedule.movie_id,
        showing_ids=schedule.showing_ids,
        fetched_at=dt.datetime.utcnow().isoformat(),
    )
