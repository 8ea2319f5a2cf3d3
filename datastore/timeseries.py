from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator, Optional

from datastore.backends import BackendError, Granularity, SeriesBackend
from datastore.local import LocalSeriesBackend
from datastore.mongo import MongoSeriesBackend
from models.errors import StoreError
from models.records import META_FIELD, TIME_FIELD, MeasurementField, SensorReading
from settings import get_settings

logger = logging.getLogger(__name__)


class TimeSeriesStore:
    """One named, time-bucketed container of buoy readings.

    Readings are partitioned by ``station_id`` and ordered by ``time``.
    Append-only: the only removal is per station or by re-initializing.
    """

    def __init__(self, backend: SeriesBackend, name: str) -> None:
        self.backend = backend
        self.name = name

    @classmethod
    def initialize(
        cls,
        backend: SeriesBackend,
        name: str,
        granularity: Granularity | str = Granularity.minutes,
    ) -> "TimeSeriesStore":
        """Drop any container called ``name`` and create a fresh, empty one.

        This discards every reading previously stored under ``name``.
        """
        granularity = Granularity(granularity)
        store = cls(backend, name)
        with store._operation("initialize"):
            backend.create_timeseries(
                name,
                time_field=TIME_FIELD,
                meta_field=META_FIELD,
                granularity=granularity,
            )
        logger.warning(
            "Dropped and recreated series container",
            extra={"collection": name, "granularity": granularity.value},
        )
        return store

    def insert(self, reading: SensorReading) -> None:
        with self._operation("insert"):
            self.backend.insert_one(self.name, reading.to_document())

    def delete_by_source(self, station_id: str) -> int:
        with self._operation("delete"):
            deleted = self.backend.delete_many(self.name, {META_FIELD: station_id})
        logger.info(
            "Deleted station readings",
            extra={"collection": self.name, "station_id": station_id, "deleted_count": deleted},
        )
        return deleted

    def distinct_sources(self) -> set[str]:
        with self._operation("distinct"):
            return set(self.backend.distinct(self.name, META_FIELD))

    def readings_for(self, station_id: str) -> list[SensorReading]:
        """All readings of one station, oldest first."""
        with self._operation("find"):
            documents = list(
                self.backend.find(self.name, {META_FIELD: station_id}, sort_field=TIME_FIELD)
            )
        return [SensorReading.from_document(document) for document in documents]

    def query_ordered(
        self,
        station_id: str,
        field: MeasurementField | str = MeasurementField.significant_wave_height,
        start_index: int = 0,
    ) -> list[tuple[int, float]]:
        """Pair each reading's ``field`` value with a plotting index."""
        field = MeasurementField(field)
        readings = self.readings_for(station_id)
        return [
            (index, reading.measurement(field))
            for index, reading in enumerate(readings, start=start_index)
        ]

    def count(self, station_id: Optional[str] = None) -> int:
        criteria = {} if station_id is None else {META_FIELD: station_id}
        with self._operation("find"):
            return sum(1 for _ in self.backend.find(self.name, criteria))

    @contextmanager
    def _operation(self, operation: str) -> Iterator[None]:
        try:
            yield
        except BackendError as exc:
            logger.error(
                "Series store operation failed",
                extra={"collection": self.name, "operation": operation, "reason": str(exc)},
            )
            raise StoreError(str(exc), operation=operation, container=self.name) from exc


@lru_cache
def build_default_backend(
    backend: Optional[str] = None,
    path: Optional[str] = None,
) -> SeriesBackend:
    """Factory that wires the engine named by settings."""
    settings = get_settings()
    kind = settings.backend if backend is None else backend
    store_path = settings.local_store_path if path is None else path
    try:
        if kind == "local":
            return LocalSeriesBackend(persistence_path=Path(store_path) if store_path else None)
        return MongoSeriesBackend.connect(settings.mongodb_uri, settings.database)
    except BackendError as exc:
        raise StoreError(str(exc), operation="connect", container=settings.database) from exc


def build_default_store(name: Optional[str] = None) -> TimeSeriesStore:
    settings = get_settings()
    collection = settings.collection if name is None else name
    return TimeSeriesStore(build_default_backend(), collection)
