"""Conversion of raw delimited fields into validated sensor readings."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Sequence

from models.errors import FieldCountError, InvalidNumber, InvalidTimestamp, MissingSourceId
from models.records import MeasurementField, SensorReading

# Decimal or exponent notation, plus NaN and infinity.
_NUMBER = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|nan|inf(?:inity)?)",
    re.IGNORECASE | re.ASCII,
)

FIELD_ORDER: tuple[str, ...] = (
    "time",
    "longitude",
    "latitude",
    "station_id",
    *(field.value for field in MeasurementField),
)


class RecordCodec:
    """Pure, positional decoder for buoy rows."""

    def decode(self, fields: Sequence[str]) -> SensorReading:
        if len(fields) != len(FIELD_ORDER):
            raise FieldCountError(expected=len(FIELD_ORDER), actual=len(fields))

        timestamp = self.parse_timestamp(fields[0])
        longitude = self._parse_float("longitude", fields[1])
        latitude = self._parse_float("latitude", fields[2])

        station_id = fields[3].strip()
        if not station_id:
            raise MissingSourceId()

        measurements = {
            name: self._parse_float(name, raw)
            for name, raw in zip(FIELD_ORDER[4:], fields[4:])
        }
        return SensorReading(
            timestamp=timestamp,
            longitude=longitude,
            latitude=latitude,
            station_id=station_id,
            **measurements,
        )

    @staticmethod
    def parse_timestamp(value: str) -> datetime:
        candidate = value.strip()
        if not candidate:
            raise InvalidTimestamp(value)

        if candidate.endswith(("Z", "z")):
            candidate = candidate[:-1] + "+00:00"

        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise InvalidTimestamp(value) from exc

        # A wall-clock time without an offset is not an absolute instant.
        if parsed.tzinfo is None:
            raise InvalidTimestamp(value)

        return parsed.astimezone(timezone.utc)

    @staticmethod
    def _parse_float(field: str, value: str) -> float:
        candidate = value.strip()
        if not _NUMBER.fullmatch(candidate):
            raise InvalidNumber(field=field, value=value)
        return float(candidate)
