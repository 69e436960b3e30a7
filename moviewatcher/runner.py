"""Core execution workflow for the movie watcher."""

from __future__ import annotations

import datetime as dt
import logging
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, Dict, Hashable, Iterator, List, Optional, Sequence

from .db import Database
from .diff import reconcile
from .errors import ScheduleFetchError
from .fetcher import ScheduleFetcher
from .filters import accepts
from .models import CycleSummary, Showing, Watcher
from .notifications import DEFAULT_TIMEZONE, NotificationDispatcher, Notifier

logger = logging.getLogger(__name__)


class KeyedLock:
    """One mutex per key, so work on different keys stays parallel."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, threading.Lock] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield


@dataclass
class MovieOutcome:
    """Result of processing one movie group."""

    movie_id: int
    delta: List[Showing] = field(default_factory=list)
    notifications_sent: int = 0
    notification_failures: int = 0
    error: Optional[str] = None
    skipped: bool = False


def group_by_movie(watchers: Sequence[Watcher]) -> Dict[int, List[Watcher]]:
    groups: Dict[int, List[Watcher]] = defaultdict(list)
    for watcher in watchers:
        groups[watcher.movie_id].append(watcher)
    return dict(groups)


@dataclass
class MovieWatcherRunner:
    """Coordinates fetch, reconcile, match and dispatch per movie."""

    database: Database
    fetcher: ScheduleFetcher
    notifier: Notifier
    max_workers: int = 4
    timezone: str = DEFAULT_TIMEZONE
    stop_event: threading.Event = field(default_factory=threading.Event)
    locks: KeyedLock = field(default_factory=KeyedLock)

    def __post_init__(self) -> None:
        self.dispatcher = NotificationDispatcher(self.notifier, timezone=self.timezone)

    def init(self) -> None:
        """Initialize required persistence structures."""
        logger.info("Initializing database at %s", self.database.path)
        self.database.initialize()

    def run_cycle(self, watchers: Sequence[Watcher]) -> CycleSummary:
        """Execute a single watch cycle; never raises."""
        executed_at = dt.datetime.utcnow().isoformat()
        groups = group_by_movie(watchers)
        logger.info(
            "Starting watch cycle for %d watchers across %d movies",
            len(watchers),
            len(groups),
        )
        summary = CycleSummary(executed_at=executed_at)
        interrupted = False

        if groups:
            workers = max(1, min(len(groups), self.max_workers))
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = {
                    pool.submit(self._process_movie, movie_id, group): movie_id
                    for movie_id, group in groups.items()
                }
                for future in as_completed(futures):
                    movie_id = futures[future]
                    try:
                        outcome = future.result()
                    except Exception as exc:  # noqa: BLE001
                        logger.exception("Processing movie %s crashed", movie_id)
                        summary.failed_movies[movie_id] = str(exc)
                        continue
                    if outcome.skipped:
                        interrupted = True
                        continue
                    if outcome.error is not None:
                        summary.failed_movies[movie_id] = outcome.error
                        continue
                    summary.movies_checked += 1
                    if outcome.delta:
                        summary.deltas[movie_id] = outcome.delta
                    summary.notifications_sent += outcome.notifications_sent
                    summary.notification_failures += outcome.notification_failures

        if interrupted:
            status = "interrupted"
        elif summary.failed_movies:
            status = "partial"
        else:
            status = "success"
        note = _format_note(summary)
        try:
            self.database.add_run(executed_at=executed_at, status=status, notes=note)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to record run at %s", executed_at)
        logger.info("Watch cycle finished (%s): %s", status, note)
        return summary

    def run_forever(
        self,
        load_watchers: Callable[[], Sequence[Watcher]],
        interval: float,
        max_cycles: Optional[int] = None,
    ) -> int:
        """Run non-overlapping cycles every ``interval`` seconds until stopped."""
        cycles = 0
        while not self.stop_event.is_set():
            try:
                watchers = load_watchers()
            except Exception:  # noqa: BLE001
                logger.exception("Failed to load watchers; skipping this cycle")
            else:
                self.run_cycle(watchers)
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            if self.stop_event.wait(interval):
                break
        logger.info("Stopped after %d cycles", cycles)
        return cycles

    def _process_movie(self, movie_id: int, watchers: List[Watcher]) -> MovieOutcome:
        if self.stop_event.is_set():
            logger.info("Shutdown requested; skipping movie %s", movie_id)
            return MovieOutcome(movie_id=movie_id, skipped=True)

        outcome = MovieOutcome(movie_id=movie_id)
        with self.locks.hold(movie_id):
            try:
                schedule = self.fetcher.fetch(movie_id)
            except ScheduleFetchError as exc:
                logger.warning("Skipping movie %s this cycle: %s", movie_id, exc)
                outcome.error = str(exc)
                return outcome

            try:
                outcome.delta = reconcile(self.database, schedule)
            except Exception as exc:  # noqa: BLE001
                logger.exception("Could not reconcile schedule for movie %s", movie_id)
                outcome.error = str(exc)
                return outcome

            for watcher in watchers:
                try:
                    matches = [
                        showing for showing in outcome.delta if accepts(watcher, showing)
                    ]
                    if not matches:
                        continue
                    delivered = self.dispatcher.dispatch(watcher, matches)
                except Exception:  # noqa: BLE001
                    logger.exception(
                        "Processing watcher %s for movie %s failed", watcher.id, movie_id
                    )
                    delivered = False
                if delivered:
                    outcome.notifications_sent += 1
                else:
                    outcome.notification_failures += 1
        return outcome


def _format_note(summary: CycleSummary) -> str:
    """Render a concise run note summarizing the cycle outcome."""
    new_showings = sum(len(delta) for delta in summary.deltas.values())
    return (
        f"movies(checked={summary.movies_checked} failed={len(summary.failed_movies)}) "
        f"showings(+{new_showings}) "
        f"notifications(sent={summary.notifications_sent} failed={summary.notification_failures})"
    )
