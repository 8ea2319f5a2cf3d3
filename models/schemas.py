"""Pydantic schemas for reports emitted by the command line."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from services.aggregator import AggregationSummary
from services.ingestion import IngestSummary


class IngestStatus(str, Enum):
    """Overall outcome of an ingestion run."""

    processed = "processed"
    partial = "partial"
    failed = "failed"


class RejectedRow(BaseModel):
    """Details about a row that failed validation or parsing."""

    row_number: int = Field(..., ge=1)
    reason: str
    detail: str


class IngestReport(BaseModel):
    """Serializable view of an ingestion run."""

    collection: str
    status: IngestStatus
    accepted: int = Field(..., ge=0)
    per_source: Dict[str, int] = Field(default_factory=dict)
    processing_ms: Optional[int] = Field(
        default=None, description="Duration in milliseconds from start to finish."
    )
    errors: List[RejectedRow] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, collection: str, summary: IngestSummary) -> "IngestReport":
        errors = [
            RejectedRow(row_number=item.position, reason=item.error.reason, detail=str(item.error))
            for item in summary.rejected
        ]
        if summary.accepted == 0 and errors:
            status = IngestStatus.failed
        elif errors:
            status = IngestStatus.partial
        else:
            status = IngestStatus.processed
        return cls(
            collection=collection,
            status=status,
            accepted=summary.accepted,
            per_source=dict(summary.per_source),
            processing_ms=summary.processing_ms,
            errors=errors,
        )


class SeriesStats(BaseModel):
    """Summary statistics for one station's measurement series."""

    station_id: str
    field: str
    row_count: int = Field(..., ge=0)
    skipped: int = Field(default=0, ge=0)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None

    @classmethod
    def from_summary(
        cls, station_id: str, field: str, summary: AggregationSummary
    ) -> "SeriesStats":
        return cls(
            station_id=station_id,
            field=field,
            row_count=summary.row_count,
            skipped=summary.skipped,
            min_value=summary.min_value,
            max_value=summary.max_value,
            mean_value=summary.mean_value,
        )
