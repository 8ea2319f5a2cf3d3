"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

TIME_FIELD = "time"
META_FIELD = "station_id"


class MeasurementField(str, Enum):
    """Measurement dimensions a series can be projected on."""

    significant_wave_height = "significant_wave_height"
    mean_wave_period = "mean_wave_period"
    mean_wave_direction = "mean_wave_direction"
    wave_power = "wave_power"
    peak_period = "peak_period"
    energy_period = "energy_period"


@dataclass(frozen=True, slots=True)
class SensorReading:
    """A single buoy reading parsed from a delimited row."""

    timestamp: datetime  # UTC
    longitude: float  # degrees east
    latitude: float  # degrees north
    station_id: str
    significant_wave_height: float  # metres
    mean_wave_period: float  # seconds
    mean_wave_direction: float  # degrees
    wave_power: float  # kW/m
    peak_period: float  # seconds
    energy_period: float  # seconds

    def measurement(self, field: MeasurementField) -> float:
        return getattr(self, field.value)

    def to_document(self) -> dict[str, Any]:
        document = asdict(self)
        document[TIME_FIELD] = document.pop("timestamp")
        return document

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> "SensorReading":
        timestamp = document[TIME_FIELD]
        # BSON datetimes come back naive unless the client is tz-aware.
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return cls(
            timestamp=timestamp.astimezone(timezone.utc),
            longitude=float(document["longitude"]),
            latitude=float(document["latitude"]),
            station_id=str(document[META_FIELD]),
            **{field.value: float(document[field.value]) for field in MeasurementField},
        )
