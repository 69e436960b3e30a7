"""Load watcher and contact definitions from a JSON file."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from .errors import WatcherFileError
from .models import ATTRIBUTES, FilterOption, FilterSet, Watcher
from .notifications import Contact

logger = logging.getLogger(__name__)


@dataclass
class WatcherFile:
    """Active watchers plus the contact details of their owners."""

    watchers: List[Watcher]
    contacts: Dict[str, Contact]


def load_watcher_file(path: Path) -> WatcherFile:
    """Read ``path`` and return its active watchers and contacts.

    Expected shape::

        {"users": [{"id": "...", "email": "...", "notifications": ["SMS"]}],
         "watchers": [{"id": "...", "user_id": "...", "movie_id": 42,
                       "cinema_id": "PATHE1", "name": "...",
                       "filters": {"start_after": 0, "imax": "YES"}}]}
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise WatcherFileError(f"cannot read watcher file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise WatcherFileError(f"watcher file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise WatcherFileError(f"watcher file {path} must contain an object")

    contacts = {}
    for row in data.get("users") or []:
        contact = _build_contact(row)
        contacts[contact.user_id] = contact

    watchers = []
    for row in data.get("watchers") or []:
        if not isinstance(row, dict):
            raise WatcherFileError(f"invalid watcher entry: {row!r}")
        if not row.get("active", True):
            logger.debug("Skipping inactive watcher %s", row.get("id"))
            continue
        watchers.append(_build_watcher(row))

    logger.info(
        "Loaded %d active watchers and %d contacts from %s",
        len(watchers),
        len(contacts),
        path,
    )
    return WatcherFile(watchers=watchers, contacts=contacts)


def _build_contact(row: dict) -> Contact:
    if not isinstance(row, dict) or "id" not in row:
        raise WatcherFileError(f"user entry without id: {row!r}")
    user_id = str(row["id"])
    return Contact(
        user_id=user_id,
        email=row.get("email") or "",
        phone_number=row.get("phone_number") or "",
        slack_webhook=row.get("slack_webhook") or "",
        channels=tuple(
            str(channel).upper() for channel in row.get("notifications") or []
        ),
    )


def _build_watcher(row: dict) -> Watcher:
    try:
        return Watcher(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            movie_id=int(row["movie_id"]),
            cinema_id=str(row["cinema_id"]),
            name=str(row.get("name") or row["id"]),
            filters=_build_filters(row.get("filters") or {}),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise WatcherFileError(f"invalid watcher entry {row!r}: {exc}") from exc


def _build_filters(row: dict) -> FilterSet:
    if not isinstance(row, dict):
        raise WatcherFileError(f"filters must be an object: {row!r}")
    options = {
        name: FilterOption.parse(row.get(name))
        for name in ATTRIBUTES
    }
    return FilterSet(
        start_after=int(row.get("start_after", 0)),
        start_before=int(row.get("start_before", sys.maxsize)),
        **options,
    )
