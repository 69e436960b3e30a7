"""SQLite-backed persistence helpers."""

from __future__ import annotations

import datetime as dt
import json
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from openpyxl import Workbook

from .models import ScheduleSnapshot


SQLITE_PREFIX = "sqlite://"
EXPORT_HEADERS = ["movie_id", "showing_id", "fetched_at"]


def resolve_sqlite_path(database_url: str) -> Path:
    """Translate a DATABASE_URL into a filesystem path."""
    if not database_url:
        raise ValueError("DATABASE_URL must not be empty")

    if database_url.startswith(SQLITE_PREFIX):
        raw_path = database_url[len(SQLITE_PREFIX) :]
        # Allow sqlite:///path/to/file and sqlite://path/to/file styles.
        if raw_path.startswith("/"):
            raw_path = raw_path[1:]
        path = Path(raw_path)
    else:
        path = Path(database_url)

    if not path.is_absolute():
        path = Path.cwd() / path

    return path.expanduser().resolve()


@dataclass
class Database:
    """Thin wrapper around sqlite3 for run history and schedule snapshots.

    Every call opens its own connection so the database can be shared by
    the worker threads of a watch cycle.
    """

    path: Path
    timeout: float = 30.0

    def connect(self) -> sqlite3.Connection:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.path, timeout=self.timeout)

    def initialize(self) -> None:
        with self.connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS runs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    executed_at TEXT NOT NULL,
                    status TEXT NOT NULL,
                    notes TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schedule_snapshots (
                    movie_id INTEGER PRIMARY KEY,
                    showing_ids TEXT NOT NULL,
                    fetched_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def add_run(self, executed_at: str, status: str, notes: str | None) -> None:
        with self.connect() as conn:
            conn.execute(
                "INSERT INTO runs (executed_at, status, notes) VALUES (?, ?, ?)",
                (executed_at, status, notes),
            )
            conn.commit()

    def recent_runs(self, limit: int = 10) -> Iterable[Tuple[str, str, str | None]]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT executed_at, status, notes FROM runs ORDER BY id DESC LIMIT ?",
                (limit,),
            )
            yield from cursor.fetchall()

    def get_snapshot(self, movie_id: int) -> Optional[ScheduleSnapshot]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT movie_id, showing_ids, fetched_at FROM schedule_snapshots WHERE movie_id = ?",
                (movie_id,),
            )
            row = cursor.fetchone()
            if not row:
                return None
            return _snapshot_from_row(row)

    def put_snapshot(self, snapshot: ScheduleSnapshot) -> None:
        """Replace the whole cached entry for the snapshot's movie."""
        fetched_at = snapshot.fetched_at or dt.datetime.utcnow().isoformat()
        showing_ids = json.dumps(sorted(snapshot.showing_ids))
        with self.connect() as conn:
            conn.execute(
                """
                INSERT INTO schedule_snapshots (movie_id, showing_ids, fetched_at)
                VALUES (?, ?, ?)
                ON CONFLICT(movie_id) DO UPDATE SET
                    showing_ids=excluded.showing_ids,
                    fetched_at=excluded.fetched_at
                """,
                (snapshot.movie_id, showing_ids, fetched_at),
            )
            conn.commit()

    def fetch_snapshots(self) -> Dict[int, ScheduleSnapshot]:
        """Return every cached snapshot keyed by movie id."""
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT movie_id, showing_ids, fetched_at FROM schedule_snapshots ORDER BY movie_id"
            )
            snapshots = {}
            for row in cursor.fetchall():
                snapshot = _snapshot_from_row(row)
                snapshots[snapshot.movie_id] = snapshot
            return snapshots

    def export_snapshots_to_xlsx(self, path: Path) -> None:
        """Write one row per cached showing id to an Excel workbook."""
        workbook = Workbook()
        worksheet = workbook.active
        worksheet.title = "snapshots"
        worksheet.append(EXPORT_HEADERS)
        for movie_id, snapshot in self.fetch_snapshots().items():
            for showing_id in sorted(snapshot.showing_ids):
                worksheet.append([movie_id, showing_id, snapshot.fetched_at])

        path.parent.mkdir(parents=True, exist_ok=True)
        workbook.save(path)


def _snapshot_from_row(row: tuple) -> ScheduleSnapshot:
    return ScheduleSnapshot(
        movie_id=int(row[0]),
        showing_ids=frozenset(int(value) for value in json.loads(row[1])),
        fetched_at=row[2],
    )
