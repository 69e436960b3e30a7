"""Movie watcher package initialization."""

from .db import Database
from .diff import reconcile
from .errors import (
    DeliveryFailure,
    MalformedResponse,
    MovieWatcherError,
    ScheduleFetchError,
    UpstreamUnavailable,
    WatcherFileError,
)
from .fetcher import PatheScheduleFetcher, ScheduleFetcher
from .filters import accepts, matches_option
from .models import (
    CycleSummary,
    FilterOption,
    FilterSet,
    MovieSchedule,
    ScheduleSnapshot,
    Showing,
    Watcher,
)
from .notifications import ContactNotifier, NotificationDispatcher
from .runner import MovieWatcherRunner
from .watchers import load_watcher_file

__all__ = [
    "ContactNotifier",
    "CycleSummary",
    "Database",
    "DeliveryFailure",
    "FilterOption",
    "FilterSet",
    "MalformedResponse",
    "MovieSchedule",
    "MovieWatcherError",
    "MovieWatcherRunner",
    "NotificationDispatcher",
    "PatheScheduleFetcher",
    "ScheduleFetchError",
    "ScheduleFetcher",
    "ScheduleSnapshot",
    "Showing",
    "UpstreamUnavailable",
    "Watcher",
    "WatcherFileError",
    "accepts",
    "load_watcher_file",
    "matches_option",
    "reconcile",
]
