"""Exception hierarchy for decoding, storage and ingestion failures."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from services.ingestion import IngestSummary


class BuoySeriesError(Exception):
    """Base exception for all buoy series failures."""


class DecodeError(BuoySeriesError):
    """A raw row could not be converted into a reading."""

    reason = "invalid row"


class InvalidTimestamp(DecodeError):
    reason = "invalid timestamp"

    def __init__(self, value: str) -> None:
        super().__init__(f"Cannot parse {value!r} as an absolute timestamp.")
        self.value = value


class InvalidNumber(DecodeError):
    reason = "invalid numeric value"

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"Field {field!r} has non-numeric value {value!r}.")
        self.field = field
        self.value = value


class MissingSourceId(DecodeError):
    reason = "missing station_id"

    def __init__(self) -> None:
        super().__init__("Row has an empty station_id.")


class FieldCountError(DecodeError):
    reason = "wrong field count"

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected {expected} fields, got {actual}.")
        self.expected = expected
        self.actual = actual


class StoreError(BuoySeriesError):
    """A store operation failed; the operation is abandoned."""

    def __init__(self, message: str, operation: str, container: str) -> None:
        super().__init__(f"{operation} on {container!r} failed: {message}")
        self.operation = operation
        self.container = container


class IngestionAborted(StoreError):
    """An ingestion run stopped before consuming its whole source."""

    def __init__(
        self,
        message: str,
        container: str,
        position: Optional[int],
        summary: "IngestSummary",
    ) -> None:
        super().__init__(message, operation="ingest", container=container)
        self.position = position
        self.summary = summary


class IngestionTimeout(IngestionAborted):
    """The caller-supplied deadline expired mid-run."""


class SourceError(BuoySeriesError):
    """A delimited source could not be read as text rows."""

    def __init__(self, message: str, path: str, line: int) -> None:
        super().__init__(f"{path}, line {line}: {message}")
        self.path = path
        self.line = line
