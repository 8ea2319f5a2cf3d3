from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import NoReturn, Optional

import typer

from cli.config import CLIConfig, load_config
from cli.render import render_chart, render_report, render_sources, render_stats
from datastore.backends import Granularity
from datastore.timeseries import TimeSeriesStore, build_default_backend, build_default_store
from logging_config import configure_logging
from models.errors import IngestionAborted, SourceError, StoreError
from models.records import MeasurementField
from models.schemas import IngestReport, SeriesStats
from services.aggregator import Aggregator
from services.ingestion import IngestionPipeline
from services.query import list_sources, series_for
from settings import get_settings


class HeaderMode(str, Enum):
    auto = "auto"
    yes = "yes"
    no = "no"

    @property
    def has_header(self) -> Optional[bool]:
        if self is HeaderMode.auto:
            return None
        return self is HeaderMode.yes


@dataclass
class CLIState:
    config: CLIConfig
    store: TimeSeriesStore


app = typer.Typer(
    help="Load buoy readings into a time-series store and inspect them.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        _fail("CLI state is uninitialized.")
    return state


def _close_backend(store: TimeSeriesStore) -> None:
    store.backend.close()
    build_default_backend.cache_clear()


def _reset(state: CLIState, granularity: Optional[Granularity]) -> None:
    chosen = granularity or Granularity(get_settings().granularity)
    try:
        state.store = TimeSeriesStore.initialize(state.store.backend, state.store.name, chosen)
    except StoreError as exc:
        _fail(str(exc))
    typer.echo(f"Created series collection {state.store.name} (granularity={chosen.value}).")


@app.callback()
def main(
    ctx: typer.Context,
    collection: Optional[str] = typer.Option(
        None,
        "--collection",
        "-c",
        help="Series collection name (defaults to COLLECTION env or 'coll').",
    ),
    chart_width: Optional[int] = typer.Option(
        None, "--width", help="Chart width in columns (defaults to CHART_WIDTH env or 72)."
    ),
    chart_height: Optional[int] = typer.Option(
        None, "--height", help="Chart height in rows (defaults to CHART_HEIGHT env or 16)."
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging()
    config = load_config(chart_width=chart_width, chart_height=chart_height)
    try:
        store = build_default_store(collection)
    except StoreError as exc:
        _fail(str(exc))
    ctx.obj = CLIState(config=config, store=store)
    ctx.call_on_close(lambda: _close_backend(ctx.obj.store))


@app.command("init")
def init_command(
    ctx: typer.Context,
    granularity: Optional[Granularity] = typer.Option(
        None, "--granularity", "-g", help="Time-bucket granularity of the collection."
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Drop and recreate the series collection, discarding every stored reading."""
    state = _get_state(ctx)
    if not yes:
        typer.confirm(
            f"Drop collection {state.store.name!r} and all of its readings?",
            abort=True,
        )
    _reset(state, granularity)


@app.command("load")
def load_command(
    ctx: typer.Context,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Path to CSV file."),
    reset: bool = typer.Option(
        False,
        "--reset/--no-reset",
        help="Drop and recreate the collection before loading.",
    ),
    granularity: Optional[Granularity] = typer.Option(
        None, "--granularity", "-g", help="Granularity used with --reset."
    ),
    header: HeaderMode = typer.Option(
        HeaderMode.auto,
        "--header",
        help="Whether the first row is a header; auto checks for a time column name.",
    ),
    delimiter: str = typer.Option(",", "--delimiter", "-d", help="Field delimiter."),
    deadline: Optional[float] = typer.Option(
        None, "--deadline", help="Abort the load after this many seconds."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the report as JSON."),
) -> None:
    """Load buoy readings from a delimited file."""
    state = _get_state(ctx)
    if reset:
        _reset(state, granularity)

    pipeline = IngestionPipeline(state.store)
    try:
        summary = pipeline.load_file(file, has_header=header.has_header, delimiter=delimiter, deadline=deadline)
    except IngestionAborted as exc:
        report = IngestReport.from_summary(state.store.name, exc.summary)
        render_report(report)
        _fail(f"Load aborted at row {exc.position}: {exc}")
    except SourceError as exc:
        _fail(f"Cannot read source file: {exc}")

    report = IngestReport.from_summary(state.store.name, summary)
    if as_json:
        typer.echo(report.model_dump_json(indent=2))
        return
    render_report(report)
    typer.echo()
    try:
        render_sources(list_sources(state.store))
    except StoreError as exc:
        _fail(str(exc))


@app.command("sources")
def sources_command(ctx: typer.Context) -> None:
    """List the stations with readings in the collection."""
    state = _get_state(ctx)
    try:
        sources = list_sources(state.store)
    except StoreError as exc:
        _fail(str(exc))
    render_sources(sources)


@app.command("delete")
def delete_command(
    ctx: typer.Context,
    station_id: str = typer.Argument(..., help="Station whose readings are removed."),
) -> None:
    """Delete every reading of one station."""
    state = _get_state(ctx)
    try:
        deleted = state.store.delete_by_source(station_id)
    except StoreError as exc:
        _fail(str(exc))
    typer.secho(f"Deleted {deleted} readings for {station_id}.", fg=typer.colors.GREEN)


@app.command("plot")
def plot_command(
    ctx: typer.Context,
    station_id: str = typer.Argument(..., help="Station to plot."),
    field: MeasurementField = typer.Option(
        MeasurementField.significant_wave_height,
        "--field",
        "-f",
        help="Measurement to plot.",
    ),
    color: Optional[str] = typer.Option(None, "--color", help="Series color."),
) -> None:
    """Chart one measurement of a station in time order."""
    state = _get_state(ctx)
    try:
        series = series_for(state.store, station_id, field)
    except StoreError as exc:
        _fail(str(exc))

    render_chart(
        series,
        label=f"{station_id} {field.value}",
        color=(color or state.config.chart_color).lower(),
        width=state.config.chart_width,
        height=state.config.chart_height,
    )
    if series:
        typer.echo()
        summary = Aggregator().aggregate(series)
        render_stats(SeriesStats.from_summary(station_id, field.value, summary))
