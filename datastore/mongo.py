"""MongoDB time-series collections behind the series backend interface."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Optional

from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from datastore.backends import BackendError, Granularity

logger = logging.getLogger(__name__)


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except PyMongoError as exc:
        raise BackendError(str(exc)) from exc


class MongoSeriesBackend:
    """Series engine backed by one MongoDB database."""

    def __init__(self, database: Database, client: Optional[MongoClient] = None) -> None:
        self.database = database
        self._client = client

    @classmethod
    def connect(cls, uri: str, database: str) -> "MongoSeriesBackend":
        """Open a client, verify the server answers, and bind ``database``."""
        with _translate_errors():
            client: MongoClient = MongoClient(uri, tz_aware=True)
            client.admin.command("ping")
        logger.info("Connected to MongoDB database %s", database)
        return cls(client[database], client=client)

    def create_timeseries(
        self,
        name: str,
        time_field: str,
        meta_field: str,
        granularity: Granularity,
    ) -> None:
        with _translate_errors():
            self.database[name].drop()
            self.database.create_collection(
                name,
                timeseries={
                    "timeField": time_field,
                    "metaField": meta_field,
                    "granularity": Granularity(granularity).value,
                },
            )

    def insert_one(self, name: str, document: Mapping[str, Any]) -> None:
        with _translate_errors():
            self.database[name].insert_one(dict(document))

    def delete_many(self, name: str, filter: Mapping[str, Any]) -> int:
        with _translate_errors():
            result = self.database[name].delete_many(dict(filter))
        return result.deleted_count

    def distinct(self, name: str, field: str) -> list[Any]:
        with _translate_errors():
            return list(self.database[name].distinct(field))

    def find(
        self,
        name: str,
        filter: Mapping[str, Any],
        sort_field: Optional[str] = None,
    ) -> Iterator[dict[str, Any]]:
        sort = [(sort_field, ASCENDING)] if sort_field else None
        with _translate_errors():
            cursor = self.database[name].find(dict(filter), projection={"_id": False}, sort=sort)
            documents = list(cursor)
        return iter(documents)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
