"""Read-side helpers composed from series store operations."""

from __future__ import annotations

from datastore.timeseries import TimeSeriesStore
from models.records import MeasurementField


def list_sources(store: TimeSeriesStore) -> list[str]:
    """Stations present in the store, sorted lexicographically."""
    return sorted(store.distinct_sources())


def parse_field(name: MeasurementField | str) -> MeasurementField:
    try:
        return MeasurementField(name)
    except ValueError as exc:
        choices = ", ".join(field.value for field in MeasurementField)
        raise ValueError(f"Unknown measurement {name!r}; expected one of: {choices}.") from exc


def series_for(
    store: TimeSeriesStore,
    station_id: str,
    field: MeasurementField | str,
) -> list[tuple[int, float]]:
    """Chronological ``(index, value)`` pairs of one measurement for a station."""
    return store.query_ordered(station_id, parse_field(field))
