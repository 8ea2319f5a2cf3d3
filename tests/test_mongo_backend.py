"""Unit tests for the MongoDB engine using a mocked database handle."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from pymongo import ASCENDING
from pymongo.errors import ServerSelectionTimeoutError

from datastore.backends import BackendError, Granularity
from datastore.mongo import MongoSeriesBackend


@pytest.fixture()
def database() -> MagicMock:
    return MagicMock()


def test_create_timeseries_drops_then_creates(database: MagicMock) -> None:
    backend = MongoSeriesBackend(database)

    backend.create_timeseries("coll", "time", "station_id", Granularity.minutes)

    database["coll"].drop.assert_called_once_with()
    database.create_collection.assert_called_once_with(
        "coll",
        timeseries={"timeField": "time", "metaField": "station_id", "granularity": "minutes"},
    )


def test_find_sorts_ascending_and_hides_ids(database: MagicMock) -> None:
    database["coll"].find.return_value = [{"station_id": "a"}]
    backend = MongoSeriesBackend(database)

    found = list(backend.find("coll", {"station_id": "a"}, sort_field="time"))

    assert found == [{"station_id": "a"}]
    database["coll"].find.assert_called_once_with(
        {"station_id": "a"}, projection={"_id": False}, sort=[("time", ASCENDING)]
    )


def test_delete_many_returns_deleted_count(database: MagicMock) -> None:
    database["coll"].delete_many.return_value.deleted_count = 3
    backend = MongoSeriesBackend(database)

    assert backend.delete_many("coll", {"station_id": "a"}) == 3


def test_distinct_and_insert_delegate(database: MagicMock) -> None:
    database["coll"].distinct.return_value = ["a", "b"]
    backend = MongoSeriesBackend(database)

    backend.insert_one("coll", {"station_id": "a"})

    assert backend.distinct("coll", "station_id") == ["a", "b"]
    database["coll"].insert_one.assert_called_once_with({"station_id": "a"})


def test_driver_errors_become_backend_errors(database: MagicMock) -> None:
    database["coll"].insert_one.side_effect = ServerSelectionTimeoutError("no servers")
    backend = MongoSeriesBackend(database)

    with pytest.raises(BackendError, match="no servers"):
        backend.insert_one("coll", {"station_id": "a"})


def test_connect_pings_admin(monkeypatch) -> None:
    client = MagicMock()
    monkeypatch.setattr("datastore.mongo.MongoClient", lambda uri, tz_aware: client)

    backend = MongoSeriesBackend.connect("mongodb://example:27017/", "buoys")

    client.admin.command.assert_called_once_with("ping")
    assert backend.database is client["buoys"]
    backend.close()
    client.close.assert_called_once_with()


def test_connect_failure_is_a_backend_error(monkeypatch) -> None:
    client = MagicMock()
    client.admin.command.side_effect = ServerSelectionTimeoutError("refused")
    monkeypatch.setattr("datastore.mongo.MongoClient", lambda uri, tz_aware: client)

    with pytest.raises(BackendError, match="refused"):
        MongoSeriesBackend.connect("mongodb://example:27017/", "buoys")
