"""In-process series engine with optional file persistence.

The persistence file is a journal of JSON lines, one per change
(``create``, ``insert`` or ``delete``), replayed on start-up. Each change
appends a single line, and ``close()`` compacts the journal into a
snapshot of the current containers by writing a temporary file and
swapping it in with ``os.replace``.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import suppress
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from datastore.backends import BackendError, Granularity

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

BucketKey = Tuple[Any, datetime]


@dataclass
class _Container:
    time_field: str
    meta_field: str
    granularity: Granularity
    buckets: Dict[BucketKey, List[dict[str, Any]]] = field(default_factory=dict)

    def bucket_key(self, document: Mapping[str, Any]) -> BucketKey:
        timestamp = document[self.time_field]
        span = self.granularity.bucket_span
        start = _EPOCH + ((timestamp - _EPOCH) // span) * span
        return document.get(self.meta_field), start

    def documents(self) -> Iterator[dict[str, Any]]:
        for bucket in self.buckets.values():
            yield from bucket

    def add(self, item: dict[str, Any]) -> None:
        self.buckets.setdefault(self.bucket_key(item), []).append(item)

    def discard_last(self, item: dict[str, Any]) -> None:
        key = self.bucket_key(item)
        bucket = self.buckets[key]
        bucket.pop()
        if not bucket:
            del self.buckets[key]

    def remove_matching(self, filter: Mapping[str, Any]) -> int:
        deleted = 0
        for key in list(self.buckets):
            bucket = self.buckets[key]
            kept = [item for item in bucket if not _matches(item, filter)]
            deleted += len(bucket) - len(kept)
            if kept:
                self.buckets[key] = kept
            else:
                del self.buckets[key]
        return deleted


class LocalSeriesBackend:

    def __init__(self, persistence_path: Optional[Path] = None) -> None:
        self._containers: Dict[str, _Container] = {}
        self.persistence_path = persistence_path
        self._lock = Lock()
        self._pending_entries = 0
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    @property
    def pending_entries(self) -> int:
        """Journal lines written since the last compaction."""
        return self._pending_entries

    def create_timeseries(
        self,
        name: str,
        time_field: str,
        meta_field: str,
        granularity: Granularity,
    ) -> None:
        container = _Container(
            time_field=time_field,
            meta_field=meta_field,
            granularity=Granularity(granularity),
        )
        with self._lock:
            self._append(_create_entry(name, container))
            self._containers[name] = container

    def insert_one(self, name: str, document: Mapping[str, Any]) -> None:
        with self._lock:
            container = self._get_container(name)
            timestamp = document.get(container.time_field)
            if not isinstance(timestamp, datetime) or timestamp.tzinfo is None:
                raise BackendError(
                    f"Document must carry an aware datetime in {container.time_field!r}."
                )
            item = dict(document)
            container.add(item)
            try:
                self._append(_insert_entry(name, item, container.time_field))
            except BackendError:
                container.discard_last(item)
                raise

    def delete_many(self, name: str, filter: Mapping[str, Any]) -> int:
        with self._lock:
            container = self._get_container(name)
            previous = dict(container.buckets)
            deleted = container.remove_matching(filter)
            if deleted:
                try:
                    self._append({"op": "delete", "container": name, "filter": dict(filter)})
                except BackendError:
                    container.buckets = previous
                    raise
            return deleted

    def distinct(self, name: str, field: str) -> list[Any]:
        with self._lock:
            container = self._get_container(name)
            values: list[Any] = []
            for item in container.documents():
                value = item.get(field)
                if value is not None and value not in values:
                    values.append(value)
            return values

    def find(
        self,
        name: str,
        filter: Mapping[str, Any],
        sort_field: Optional[str] = None,
    ) -> Iterator[dict[str, Any]]:
        with self._lock:
            container = self._get_container(name)
            matches = [dict(item) for item in container.documents() if _matches(item, filter)]
        if sort_field is not None:
            matches.sort(key=lambda item: item[sort_field])
        return iter(matches)

    def close(self) -> None:
        with self._lock:
            if not self._pending_entries:
                return
            try:
                self._compact()
            except BackendError as exc:
                # The journal still holds every change; compaction is retried next close.
                logger.warning("Keeping uncompacted series journal: %s", exc)

    def _compact(self) -> None:
        """Rewrite the journal as one snapshot of the current containers."""
        if not self.persistence_path:
            return
        temporary = self.persistence_path.with_name(self.persistence_path.name + ".tmp")
        try:
            with temporary.open("w", encoding="utf-8") as handle:
                for line in self._snapshot_lines():
                    handle.write(line + "\n")
            os.replace(temporary, self.persistence_path)
        except OSError as exc:
            with suppress(OSError):
                temporary.unlink()
            raise BackendError(
                f"Cannot write series store at {self.persistence_path}: {exc}"
            ) from exc
        self._pending_entries = 0

    def _get_container(self, name: str) -> _Container:
        container = self._containers.get(name)
        if container is None:
            raise BackendError(f"Series container {name!r} does not exist.")
        return container

    def _append(self, entry: Mapping[str, Any]) -> None:
        if not self.persistence_path:
            return
        line = json.dumps(entry, sort_keys=True)
        try:
            with self.persistence_path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except OSError as exc:
            raise BackendError(
                f"Cannot write series store at {self.persistence_path}: {exc}"
            ) from exc
        self._pending_entries += 1

    def _snapshot_lines(self) -> Iterable[str]:
        for name, container in self._containers.items():
            yield json.dumps(_create_entry(name, container), sort_keys=True)
            for item in container.documents():
                yield json.dumps(_insert_entry(name, item, container.time_field), sort_keys=True)

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        try:
            with self.persistence_path.open("r", encoding="utf-8") as handle:
                for line in handle:
                    if line.strip():
                        self._replay(json.loads(line))
        except (OSError, ValueError, KeyError) as exc:
            raise BackendError(
                f"Cannot read series store at {self.persistence_path}: {exc}"
            ) from exc

    def _replay(self, entry: Mapping[str, Any]) -> None:
        name = entry["container"]
        op = entry["op"]
        if op == "create":
            self._containers[name] = _Container(
                time_field=entry["time_field"],
                meta_field=entry["meta_field"],
                granularity=Granularity(entry["granularity"]),
            )
        elif op == "insert":
            container = self._containers[name]
            container.add(_decode(entry["document"], container.time_field))
        elif op == "delete":
            self._containers[name].remove_matching(entry["filter"])
        else:
            raise ValueError(f"unknown journal entry {op!r}")


def _create_entry(name: str, container: _Container) -> dict[str, Any]:
    return {
        "op": "create",
        "container": name,
        "time_field": container.time_field,
        "meta_field": container.meta_field,
        "granularity": container.granularity.value,
    }


def _insert_entry(name: str, item: Mapping[str, Any], time_field: str) -> dict[str, Any]:
    return {"op": "insert", "container": name, "document": _encode(item, time_field)}


def _matches(item: Mapping[str, Any], filter: Mapping[str, Any]) -> bool:
    return all(item.get(key) == value for key, value in filter.items())


def _encode(item: Mapping[str, Any], time_field: str) -> dict[str, Any]:
    encoded = dict(item)
    encoded[time_field] = item[time_field].isoformat()
    return encoded


def _decode(encoded: Mapping[str, Any], time_field: str) -> dict[str, Any]:
    item = dict(encoded)
    item[time_field] = datetime.fromisoformat(encoded[time_field])
    return item
