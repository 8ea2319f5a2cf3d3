"""Persistence boundary shared by the time-series engines."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Any, Iterator, Mapping, Optional, Protocol


class Granularity(str, Enum):
    """Time-bucketing granularity of a series container."""

    seconds = "seconds"
    minutes = "minutes"
    hours = "hours"

    @property
    def bucket_span(self) -> timedelta:
        return _BUCKET_SPANS[self]


# MongoDB's fixed bucket spans for each granularity.
_BUCKET_SPANS = {
    Granularity.seconds: timedelta(hours=1),
    Granularity.minutes: timedelta(hours=24),
    Granularity.hours: timedelta(days=30),
}


class BackendError(Exception):
    """Raised by an engine when a primitive operation fails."""


class SeriesBackend(Protocol):
    """Narrow interface to a time-series aware document engine."""

    def create_timeseries(
        self,
        name: str,
        time_field: str,
        meta_field: str,
        granularity: Granularity,
    ) -> None:
        """Drop any container called ``name`` and create an empty one."""
        ...

    def insert_one(self, name: str, document: Mapping[str, Any]) -> None:
        ...

    def delete_many(self, name: str, filter: Mapping[str, Any]) -> int:
        ...

    def distinct(self, name: str, field: str) -> list[Any]:
        ...

    def find(
        self,
        name: str,
        filter: Mapping[str, Any],
        sort_field: Optional[str] = None,
    ) -> Iterator[dict[str, Any]]:
        ...

    def close(self) -> None:
        ...
