"""CLI entrypoint for the movie watcher agent."""

from __future__ import annotations

import argparse
import logging
import os
import signal
import sys
from pathlib import Path

from moviewatcher.db import Database, resolve_sqlite_path
from moviewatcher.errors import WatcherFileError
from moviewatcher.fetcher import PATHE_API_BASE, PatheScheduleFetcher
from moviewatcher.notifications import (
    DEFAULT_TIMEZONE,
    ContactNotifier,
    build_channels_from_env,
)
from moviewatcher.runner import MovieWatcherRunner
from moviewatcher.watchers import load_watcher_file

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Cinema showtime watcher")
    parser.add_argument("--init", action="store_true", help="initialize storage and exit")
    parser.add_argument("--run", action="store_true", help="execute one watch cycle")
    parser.add_argument(
        "--loop",
        action="store_true",
        help="poll continuously until interrupted",
    )
    parser.add_argument(
        "--watchers",
        default=os.getenv("WATCHERS_FILE", "watchers.json"),
        help="JSON file with users and watchers (overrides WATCHERS_FILE env var)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=float(os.getenv("POLL_INTERVAL", "300")),
        help="seconds between cycles in --loop mode (overrides POLL_INTERVAL)",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=int(os.getenv("MAX_WORKERS", "4")),
        help="movies processed in parallel (overrides MAX_WORKERS)",
    )
    parser.add_argument(
        "--export",
        metavar="PATH",
        help="write cached schedule snapshots to an .xlsx file and exit",
    )
    parser.add_argument("--verbose", action="store_true", help="enable debug logging")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    database_url = os.getenv("DATABASE_URL", "sqlite:///movie_watcher.db")
    database = Database(path=resolve_sqlite_path(database_url))

    if args.init:
        database.initialize()
        logger.info("Initialized database at %s", database.path)
        return 0

    if args.export:
        export_path = Path(args.export)
        database.export_snapshots_to_xlsx(export_path)
        logger.info("Exported schedule snapshots to %s", export_path)
        return 0

    if not (args.run or args.loop):
        parser.print_help()
        return 1

    api_key = (os.getenv("PATHE_API_KEY") or "").strip()
    if not api_key:
        logger.error("PATHE_API_KEY is not set")
        return 1

    watchers_path = Path(args.watchers)
    try:
        watcher_file = load_watcher_file(watchers_path)
    except WatcherFileError as exc:
        logger.error("%s", exc)
        return 1

    channels = build_channels_from_env()
    if not channels:
        logger.warning("No delivery channels configured; notifications will fail")
    notifier = ContactNotifier(contacts=watcher_file.contacts, channels=channels)

    runner = MovieWatcherRunner(
        database=database,
        fetcher=PatheScheduleFetcher(
            api_key=api_key,
            base_url=os.getenv("PATHE_API_BASE", PATHE_API_BASE),
        ),
        notifier=notifier,
        max_workers=args.max_workers,
        timezone=os.getenv("DISPLAY_TIMEZONE", DEFAULT_TIMEZONE),
    )
    runner.init()

    if args.run:
        summary = runner.run_cycle(watcher_file.watchers)
        return 0 if not summary.failed_movies else 2

    def request_stop(signum, frame):
        logger.info("Received signal %d; finishing in-flight work", signum)
        runner.stop_event.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    def reload_watchers():
        current = load_watcher_file(watchers_path)
        notifier.contacts = current.contacts
        return current.watchers

    runner.run_forever(reload_watchers, interval=args.interval)
    return 0


if __name__ == "__main__":
    sys.exit(main())
