from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from datastore.local import LocalSeriesBackend
from datastore.timeseries import TimeSeriesStore
from models.records import SensorReading

T0 = datetime(2017, 1, 1, tzinfo=timezone.utc)


def _make_reading(station_id: str = "M6", minutes: int = 0, height: float = 1.0) -> SensorReading:
    return SensorReading(
        timestamp=T0 + timedelta(minutes=minutes),
        longitude=-15.88,
        latitude=53.07,
        station_id=station_id,
        significant_wave_height=height,
        mean_wave_period=7.0,
        mean_wave_direction=250.0,
        wave_power=20.0,
        peak_period=9.0,
        energy_period=8.0,
    )


@pytest.fixture()
def make_reading():
    return _make_reading


@pytest.fixture()
def store() -> TimeSeriesStore:
    return TimeSeriesStore.initialize(LocalSeriesBackend(), "buoys")
