from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from cli.app import app
from datastore.backends import BackendError
from datastore.local import LocalSeriesBackend
from datastore.timeseries import TimeSeriesStore

CSV_BODY = (
    "time,longitude,latitude,station_id,significant_wave_height,mean_wave_period,"
    "mean_wave_direction,wave_power,peak_period,energy_period\n"
    "2017-01-01T00:00:00Z,-10.1,54.2,M6,1.0,7.0,250.0,30.0,9.5,8.0\n"
    "2017-01-01T00:30:00Z,-10.1,54.2,M6,2.0,7.0,250.0,30.0,9.5,8.0\n"
    "2017-01-01T00:00:00Z,-9.9,53.1,M2,0.5,6.0,240.0,10.0,8.5,7.0\n"
    "bad-time,-9.9,53.1,M2,0.5,6.0,240.0,10.0,8.5,7.0\n"
)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def store(monkeypatch) -> TimeSeriesStore:
    store = TimeSeriesStore.initialize(LocalSeriesBackend(), "buoys")

    def factory(name=None):
        return TimeSeriesStore(store.backend, name or store.name)

    monkeypatch.setattr("cli.app.build_default_store", factory)
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)
    return store


@pytest.fixture()
def csv_path(tmp_path: Path) -> Path:
    path = tmp_path / "2017-short.csv"
    path.write_text(CSV_BODY)
    return path


def test_load_reports_and_lists_stations(runner: CliRunner, store: TimeSeriesStore, csv_path: Path) -> None:
    result = runner.invoke(app, ["load", str(csv_path)])

    assert result.exit_code == 0, result.output
    assert "Ingestion Result" in result.stdout
    assert "status: partial" in result.stdout
    assert "accepted: 3" in result.stdout
    assert "row 5: invalid timestamp" in result.stdout
    assert "  - M2\n  - M6" in result.stdout
    assert store.count() == 3


def test_load_json_report(runner: CliRunner, store: TimeSeriesStore, csv_path: Path) -> None:
    result = runner.invoke(app, ["load", str(csv_path), "--json"])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert payload["collection"] == "buoys"
    assert payload["accepted"] == 3
    assert payload["per_source"] == {"M6": 2, "M2": 1}
    assert payload["errors"][0]["row_number"] == 5


def test_load_with_reset_discards_previous_readings(
    runner: CliRunner, store: TimeSeriesStore, csv_path: Path
) -> None:
    runner.invoke(app, ["load", str(csv_path)])

    result = runner.invoke(app, ["load", str(csv_path), "--reset", "--granularity", "hours"])

    assert result.exit_code == 0, result.output
    assert "granularity=hours" in result.stdout
    assert store.count() == 3


def test_sources_and_delete(runner: CliRunner, store: TimeSeriesStore, csv_path: Path) -> None:
    runner.invoke(app, ["load", str(csv_path)])

    deleted = runner.invoke(app, ["delete", "M6"])
    listed = runner.invoke(app, ["sources"])

    assert deleted.exit_code == 0
    assert "Deleted 2 readings for M6." in deleted.stdout
    assert listed.exit_code == 0
    assert "M2" in listed.stdout
    assert "M6" not in listed.stdout


def test_init_requires_confirmation(runner: CliRunner, store: TimeSeriesStore, csv_path: Path) -> None:
    runner.invoke(app, ["load", str(csv_path)])

    declined = runner.invoke(app, ["init"], input="n\n")

    assert declined.exit_code != 0
    assert store.count() == 3

    confirmed = runner.invoke(app, ["init", "--yes"])

    assert confirmed.exit_code == 0
    assert store.count() == 0


def test_plot_renders_chart_and_stats(runner: CliRunner, store: TimeSeriesStore, csv_path: Path) -> None:
    runner.invoke(app, ["load", str(csv_path)])

    result = runner.invoke(app, ["--width", "20", "--height", "5", "plot", "M6"])

    assert result.exit_code == 0, result.output
    assert "M6 significant_wave_height" in result.stdout
    assert "*" in result.stdout
    assert "row_count: 2" in result.stdout
    assert "mean_value: 1.5" in result.stdout


def test_plot_selects_field_and_handles_empty_series(runner: CliRunner, store: TimeSeriesStore) -> None:
    result = runner.invoke(app, ["plot", "Belmullet_Inner", "--field", "wave_power"])

    assert result.exit_code == 0, result.output
    assert "Belmullet_Inner wave_power" in result.stdout
    assert "No readings to plot." in result.stdout


def test_store_errors_exit_with_message(runner: CliRunner, monkeypatch) -> None:
    backend = MagicMock()
    backend.distinct.side_effect = BackendError("server unreachable")
    monkeypatch.setattr("cli.app.build_default_store", lambda name=None: TimeSeriesStore(backend, "buoys"))
    monkeypatch.setattr("cli.app.configure_logging", lambda: None)

    result = runner.invoke(app, ["sources"])

    assert result.exit_code == 1
    assert "server unreachable" in result.output


def test_load_of_undecodable_file_exits_with_message(
    runner: CliRunner, store: TimeSeriesStore, tmp_path: Path
) -> None:
    path = tmp_path / "latin1.csv"
    path.write_bytes(b"2017-01-01T00:00:00Z,-10.1,54.2,Belmull\xe9t,1.0,7.0,250.0,30.0,9.5,8.0\n")

    result = runner.invoke(app, ["load", str(path)])

    assert result.exit_code == 1
    assert "Cannot read source file" in result.output
    assert "line 1" in result.output
    assert store.count() == 0
