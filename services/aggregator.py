"""Summary statistics for a projected measurement series."""

from __future__ import annotations

from dataclasses import dataclass
from math import isfinite
from typing import Iterable


@dataclass
class AggregationSummary:
    """Computed statistics for one series."""

    row_count: int = 0
    skipped: int = 0
    min_value: float | None = None
    max_value: float | None = None
    mean_value: float | None = None


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def aggregate(self, series: Iterable[tuple[int, float]]) -> AggregationSummary:
        summary = AggregationSummary()
        total = 0.0
        counted = 0

        for _index, value in series:
            summary.row_count += 1
            # Buoys report missing measurements as NaN.
            if not isfinite(value):
                summary.skipped += 1
                continue
            counted += 1
            total += value

            if summary.min_value is None or value < summary.min_value:
                summary.min_value = value
            if summary.max_value is None or value > summary.max_value:
                summary.max_value = value

        if counted:
            summary.mean_value = total / counted

        return summary
