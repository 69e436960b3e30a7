"""Core data models for the movie watcher."""

from __future__ import annotations

import enum
import sys
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Union

# Provider attributes come back as booleans or 0/1 integers.
AttributeValue = Optional[Union[bool, int]]

ATTRIBUTES: Tuple[str, ...] = (
    "is_3d",
    "imax",
    "ov",
    "nl",
    "hfr",
    "atmos",
    "is_4k",
    "laser",
    "is_4dx",
    "dolby_cinema",
)


class FilterOption(enum.Enum):
    """Ternary preference for a single screening attribute."""

    YES = "YES"
    NO = "NO"
    NO_PREFERENCE = "NO_PREFERENCE"

    @classmethod
    def parse(cls, value: object) -> "FilterOption":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NO_PREFERENCE
        if isinstance(value, bool):
            return cls.YES if value else cls.NO
        if isinstance(value, str):
            normalized = value.strip().upper().replace("-", "_")
            if normalized == "NOPREFERENCE":
                return cls.NO_PREFERENCE
            try:
                return cls[normalized]
            except KeyError:
                pass
        raise ValueError(f"Unknown filter option: {value!r}")


@dataclass(frozen=True)
class FilterSet:
    """Time window and format preferences attached to a watcher."""

    start_after: int = 0
    start_before: int = sys.maxsize
    is_3d: FilterOption = FilterOption.NO_PREFERENCE
    imax: FilterOption = FilterOption.NO_PREFERENCE
    ov: FilterOption = FilterOption.NO_PREFERENCE
    nl: FilterOption = FilterOption.NO_PREFERENCE
    hfr: FilterOption = FilterOption.NO_PREFERENCE
    atmos: FilterOption = FilterOption.NO_PREFERENCE
    is_4k: FilterOption = FilterOption.NO_PREFERENCE
    laser: FilterOption = FilterOption.NO_PREFERENCE
    is_4dx: FilterOption = FilterOption.NO_PREFERENCE
    dolby_cinema: FilterOption = FilterOption.NO_PREFERENCE


@dataclass(frozen=True)
class Watcher:
    """A user's standing request for showings of one movie."""

    id: str
    user_id: str
    movie_id: int
    cinema_id: str
    name: str
    filters: FilterSet = field(default_factory=FilterSet)


@dataclass(frozen=True)
class Showing:
    """One scheduled screening as reported by the provider."""

    id: int
    movie_id: int
    cinema_id: str
    start_time: int
    is_3d: AttributeValue = None
    imax: AttributeValue = None
    ov: AttributeValue = None
    nl: AttributeValue = None
    hfr: AttributeValue = None
    atmos: AttributeValue = None
    is_4k: AttributeValue = None
    laser: AttributeValue = None
    is_4dx: AttributeValue = None
    dolby_cinema: AttributeValue = None

    def sort_key(self) -> Tuple[int, int]:
        return (self.start_time, self.id)


@dataclass(frozen=True)
class MovieSchedule:
    """Full result of one schedule fetch for a movie."""

    movie_id: int
    showings: Sequence[Showing]

    @property
    def showing_ids(self) -> FrozenSet[int]:
        return frozenset(showing.id for showing in self.showings)


@dataclass(frozen=True)
class ScheduleSnapshot:
    """Cached showing ids observed on the last accepted fetch."""

    movie_id: int
    showing_ids: FrozenSet[int]
    fetched_at: str = ""


@dataclass
class CycleSummary:
    """Aggregated result returned by a watch cycle."""

    executed_at: str
    movies_checked: int = 0
    failed_movies: Dict[int, str] = field(default_factory=dict)
    deltas: Dict[int, List[Showing]] = field(default_factory=dict)
    notifications_sent: int = 0
    notification_failures: int = 0
