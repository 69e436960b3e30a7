"""Schedule retrieval from the Pathé connect API."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, List, Protocol

import requests

from .errors import MalformedResponse, UpstreamUnavailable
from .models import AttributeValue, MovieSchedule, Showing

logger = logging.getLogger(__name__)

PATHE_API_BASE = "https://connect.pathe.nl/v1/"
CINEMA_ID_PREFIX = "PATHE"
DEFAULT_TIMEOUT = 20

# Provider keys for each showing attribute, in filter order.
ATTRIBUTE_KEYS = {
    "is_3d": "is3d",
    "imax": "imax",
    "ov": "ov",
    "nl": "nl",
    "hfr": "hfr",
    "atmos": "isAtmos",
    "is_4k": "is4k",
    "laser": "isLaser",
    "is_4dx": "is4dx",
    "dolby_cinema": "isVision",
}


class ScheduleFetcher(Protocol):
    """Protocol defining the schedule provider contract."""

    def fetch(self, movie_id: int) -> MovieSchedule:
        ...


class PatheScheduleFetcher:
    """Fetch complete movie schedules from the Pathé API.

    Failures are raised as ``UpstreamUnavailable`` or ``MalformedResponse``;
    nothing is retried here.
    """

    def __init__(self,
                 api_key: str,
                 base_url: str = PATHE_API_BASE,
                 timeout: int = DEFAULT_TIMEOUT,
                 session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "MovieWatcher/1.0",
            "Accept": "application/json",
            "X-Client-Token": api_key,
        })

    def fetch(self, movie_id: int) -> MovieSchedule:
        url = f"{self.base_url}movies/{movie_id}/schedules"
        logger.debug("Fetching schedule for movie %s from %s", movie_id, url)
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise UpstreamUnavailable(movie_id, f"request failed: {exc}") from exc

        if response.status_code != 200:
            raise UpstreamUnavailable(
                movie_id, f"status {response.status_code} from {url}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedResponse(movie_id, "response is not JSON") from exc

        showings = parse_schedule(movie_id, payload)
        logger.info("Fetched %d showings for movie %s", len(showings), movie_id)
        return MovieSchedule(movie_id=movie_id, showings=showings)


def parse_schedule(movie_id: int, payload: Any) -> List[Showing]:
    """Convert a schedules payload into showings."""
    if not isinstance(payload, dict):
        raise MalformedResponse(movie_id, f"unexpected payload: {payload!r}")
    rows = payload.get("schedules")
    if not isinstance(rows, list):
        raise MalformedResponse(movie_id, "payload has no schedules list")
    return [_build_showing(movie_id, row) for row in rows]


def parse_start_time(value: Any) -> int:
    """Parse an ISO-8601 timestamp with offset into epoch milliseconds.

    Unparseable values map to ``-1`` so they fall outside every window.
    """
    if not isinstance(value, str):
        return -1
    try:
        parsed = dt.datetime.fromisoformat(value.strip())
    except ValueError:
        return -1
    if parsed.tzinfo is None:
        return -1
    return int(parsed.timestamp() * 1000)


def _build_showing(movie_id: int, row: Any) -> Showing:
    if not isinstance(row, dict):
        raise MalformedResponse(movie_id, f"unexpected schedule entry: {row!r}")
    try:
        showing_id = int(row["id"])
        cinema_id = int(row["cinemaId"])
        showing_movie_id = int(row.get("movieId", movie_id))
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedResponse(movie_id, f"invalid schedule entry: {row!r}") from exc

    attributes = {
        field_name: _attribute(movie_id, row.get(key))
        for field_name, key in ATTRIBUTE_KEYS.items()
    }
    return Showing(
        id=showing_id,
        movie_id=showing_movie_id,
        cinema_id=f"{CINEMA_ID_PREFIX}{cinema_id}",
        start_time=parse_start_time(row.get("start")),
        **attributes,
    )


def _attribute(movie_id: int, value: Any) -> AttributeValue:
    if value is None or isinstance(value, (bool, int)):
        return value
    raise MalformedResponse(movie_id, f"invalid attribute value: {value!r}")
