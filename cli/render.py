from __future__ import annotations

from math import isfinite
from typing import Any, Iterable, Sequence

import typer

from models.schemas import IngestReport, SeriesStats

_COLORS = {
    "black", "red", "green", "yellow", "blue", "magenta", "cyan", "white",
    "bright_black", "bright_red", "bright_green", "bright_yellow",
    "bright_blue", "bright_magenta", "bright_cyan", "bright_white",
}
_MARK = "*"
_LABEL_WIDTH = 10


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_report(report: IngestReport) -> None:
    echo_heading("Ingestion Result")
    echo_key_values(
        [
            ("collection", report.collection),
            ("status", report.status.value),
            ("accepted", report.accepted),
            ("rejected", len(report.errors)),
            ("processing_ms", report.processing_ms),
        ]
    )
    if report.per_source:
        typer.echo("per_source:")
        for station_id, count in sorted(report.per_source.items()):
            typer.echo(f"  - {station_id}: {count}")

    typer.echo()
    echo_heading("Errors")
    if report.errors:
        for error in report.errors:
            typer.echo(f"  - row {error.row_number}: {error.reason} ({error.detail})")
    else:
        typer.echo("No errors recorded.")


def render_sources(sources: Sequence[str]) -> None:
    echo_heading("Stations")
    if not sources:
        typer.echo("No stations stored.")
        return
    for station_id in sources:
        typer.echo(f"  - {station_id}")


def render_stats(stats: SeriesStats) -> None:
    echo_heading(f"{stats.station_id} / {stats.field}")
    echo_key_values(
        [
            ("row_count", stats.row_count),
            ("skipped", stats.skipped),
            ("min_value", stats.min_value),
            ("max_value", stats.max_value),
            ("mean_value", stats.mean_value),
        ]
    )


def build_chart(points: Sequence[tuple[float, float]], width: int, height: int) -> list[str]:
    """Lay ``(x, y)`` points out on a character grid, highest row first.

    Points with a non-finite ``y`` are left out. Returns no lines when
    nothing is plottable.
    """
    plotted = [(x, y) for x, y in points if isfinite(y)]
    if not plotted:
        return []

    width = max(width, 2)
    height = max(height, 2)
    xs = [x for x, _ in plotted]
    ys = [y for _, y in plotted]
    x_min, x_max = min(xs), max(xs)
    y_min, y_max = min(ys), max(ys)
    x_span = (x_max - x_min) or 1.0
    y_span = (y_max - y_min) or 1.0

    grid = [[" "] * width for _ in range(height)]
    for x, y in plotted:
        column = round((x - x_min) / x_span * (width - 1))
        row = round((y - y_min) / y_span * (height - 1))
        grid[height - 1 - row][column] = _MARK

    lines = []
    for offset, cells in enumerate(grid):
        if offset == 0:
            label = f"{y_max:.2f}"
        elif offset == height - 1:
            label = f"{y_min:.2f}"
        else:
            label = ""
        lines.append(f"{label:>{_LABEL_WIDTH}} |{''.join(cells).rstrip()}")
    lines.append(f"{'':>{_LABEL_WIDTH}} +{'-' * width}")
    x_left = f"{x_min:g}"
    x_right = f"{x_max:g}"
    gap = max(width - len(x_left) - len(x_right), 1)
    lines.append(f"{'':>{_LABEL_WIDTH}}  {x_left}{' ' * gap}{x_right}")
    return lines


def render_chart(
    points: Sequence[tuple[float, float]],
    label: str,
    color: str,
    width: int,
    height: int,
) -> None:
    lines = build_chart(points, width=width, height=height)
    echo_heading(label)
    if not lines:
        typer.echo("No readings to plot.")
        return
    fg = color if color in _COLORS else "cyan"
    for line in lines:
        typer.secho(line, fg=fg)
