"""Sequential ingestion of raw buoy rows into a series store."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from datastore.timeseries import TimeSeriesStore
from models.errors import (
    DecodeError,
    IngestionAborted,
    IngestionTimeout,
    InvalidNumber,
    InvalidTimestamp,
    StoreError,
)
from services.codec import RecordCodec
from sources.delimited import RawRow, read_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RejectedRecord:
    position: int
    error: DecodeError


@dataclass
class IngestSummary:
    """Outcome of one ingestion run."""

    accepted: int = 0
    rejected: List[RejectedRecord] = field(default_factory=list)
    per_source: Dict[str, int] = field(default_factory=dict)
    processing_ms: Optional[int] = None

    @property
    def total(self) -> int:
        return self.accepted + len(self.rejected)


class IngestionPipeline:
    """Decodes rows in source order and appends each reading to the store.

    Malformed rows are collected and skipped. A store failure stops the run
    and is raised as :class:`IngestionAborted`; readings inserted before it
    stay in the store.
    """

    def __init__(self, store: TimeSeriesStore, codec: Optional[RecordCodec] = None) -> None:
        self.store = store
        self.codec = codec or RecordCodec()

    def run(self, rows: Iterable[RawRow], deadline: Optional[float] = None) -> IngestSummary:
        """Ingest ``rows``; ``deadline`` is a budget in seconds for the whole run."""
        start_time = time.perf_counter()
        expires_at = time.monotonic() + deadline if deadline is not None else None
        summary = IngestSummary()

        for position, fields in rows:
            if expires_at is not None and time.monotonic() > expires_at:
                summary.processing_ms = _elapsed_ms(start_time)
                raise IngestionTimeout(
                    f"deadline of {deadline}s expired",
                    container=self.store.name,
                    position=position,
                    summary=summary,
                )

            try:
                reading = self.codec.decode(fields)
            except DecodeError as exc:
                self._log_rejection(position, exc)
                summary.rejected.append(RejectedRecord(position=position, error=exc))
                continue

            try:
                self.store.insert(reading)
            except StoreError as exc:
                summary.processing_ms = _elapsed_ms(start_time)
                raise IngestionAborted(
                    str(exc),
                    container=self.store.name,
                    position=position,
                    summary=summary,
                ) from exc

            summary.accepted += 1
            summary.per_source[reading.station_id] = (
                summary.per_source.get(reading.station_id, 0) + 1
            )

        summary.processing_ms = _elapsed_ms(start_time)
        logger.info(
            "Finished ingestion run",
            extra={
                "collection": self.store.name,
                "accepted": summary.accepted,
                "rejected": len(summary.rejected),
                "processing_ms": summary.processing_ms,
            },
        )
        return summary

    def load_file(
        self,
        path: Path | str,
        has_header: Optional[bool] = None,
        delimiter: str = ",",
        deadline: Optional[float] = None,
    ) -> IngestSummary:
        logger.info("Loading %s into series store", path, extra={"collection": self.store.name})
        return self.run(
            read_rows(path, delimiter=delimiter, has_header=has_header),
            deadline=deadline,
        )

    def _log_rejection(self, position: int, exc: DecodeError) -> None:
        extra = {
            "collection": self.store.name,
            "row_number": position,
            "reason": exc.reason,
        }
        if isinstance(exc, InvalidNumber):
            extra["field"] = exc.field
            extra["invalid_value"] = exc.value
        elif isinstance(exc, InvalidTimestamp):
            extra["invalid_value"] = exc.value
        logger.warning("Skipping row %s: %s", position, exc.reason, extra=extra)


def _elapsed_ms(start_time: float) -> int:
    return int((time.perf_counter() - start_time) * 1000)
