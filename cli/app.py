from __future__ import annotations

import sys
import threading
from dataclasses import dataclass
from typing import NoReturn, Optional, Sequence

import typer

from cli.config import CLIConfig, load_config
from cli.render import render_devices, render_snapshot, write_rows_csv
from logging_config import configure_logging
from models.records import MetricSelector, TimeWindow
from services.composer import DEFAULT_SELECTORS, SELECTORS_BY_ID, TEMPERATURE
from services.pipeline import DashboardSnapshot, build_default_pipeline
from services.refresher import RefreshScheduler, Selection
from services.window import resolve_window
from sources.registry import DeviceRegistry, filter_by_type, missing_devices
from sources.telemetry import TelemetrySource, TelemetrySourceError


@dataclass
class CLIState:
    config: CLIConfig
    source: TelemetrySource
    registry: DeviceRegistry


app = typer.Typer(
    help="Inspect cold-chain sensor telemetry from the command line.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1, message="CLI state is uninitialized.")
    return state


def _fail(exc: TelemetrySourceError) -> NoReturn:
    typer.secho(f"Telemetry request failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _selectors(metric: str) -> Sequence[MetricSelector]:
    selector = SELECTORS_BY_ID.get(metric)
    if selector is None:
        choices = ", ".join(SELECTORS_BY_ID)
        raise typer.BadParameter(f"Unknown metric {metric!r}; choose one of {choices}.")
    if selector == TEMPERATURE:
        return DEFAULT_SELECTORS
    return (selector,)


def _window(state: CLIState, start: Optional[float], end: Optional[float], hours: Optional[float]) -> TimeWindow:
    try:
        return resolve_window(start, end, default_hours=hours or state.config.window_hours)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _snapshot(
    state: CLIState,
    device_id: str,
    window: TimeWindow,
    selectors: Optional[Sequence[MetricSelector]] = None,
    full_report: bool = False,
) -> DashboardSnapshot:
    try:
        profile = state.registry.get_profile(device_id)
        records = state.source.fetch_device_data(device_id, window)
    except TelemetrySourceError as exc:
        _fail(exc)
    return build_default_pipeline().run(
        records,
        device_id=device_id,
        window=window,
        profile=profile,
        selectors=selectors,
        full_report=full_report,
    )


@app.callback()
def main(
    ctx: typer.Context,
    telemetry_url: Optional[str] = typer.Option(
        None,
        "--telemetry-url",
        help="Telemetry API base URL (defaults to TELEMETRY_API_URL env).",
    ),
    registry_url: Optional[str] = typer.Option(
        None,
        "--registry-url",
        help="Device registry base URL (defaults to REGISTRY_API_URL env).",
    ),
    company: Optional[str] = typer.Option(
        None,
        "--company",
        "-c",
        help="Company whose devices are queried (defaults to TELEMETRY_COMPANY env).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="HTTP timeout in seconds.",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level for diagnostics written to stderr.",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level.upper())
    config = load_config(
        telemetry_url=telemetry_url,
        registry_url=registry_url,
        company=company,
        timeout=timeout,
    )
    source = TelemetrySource(config.telemetry_url, config.company, timeout=config.timeout)
    registry = DeviceRegistry(config.registry_url, config.company, timeout=config.timeout)
    ctx.obj = CLIState(config=config, source=source, registry=registry)
    ctx.call_on_close(source.close)
    ctx.call_on_close(registry.close)


@app.command("devices")
def devices_command(
    ctx: typer.Context,
    device_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only show devices of this type."),
) -> None:
    """List registered devices and telemetry ids missing from the registry."""
    state = _get_state(ctx)
    try:
        profiles = state.registry.list_profiles()
        telemetry_ids = state.source.list_device_ids()
    except TelemetrySourceError as exc:
        _fail(exc)
    shown = filter_by_type(profiles, device_type) if device_type else profiles
    render_devices(shown, missing_devices(telemetry_ids, profiles))


@app.command("series")
def series_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    metric: str = typer.Option("temperature", "--metric", "-m", help="Primary metric series id."),
    start: Optional[float] = typer.Option(None, "--start", help="Window start, epoch seconds."),
    end: Optional[float] = typer.Option(None, "--end", help="Window end, epoch seconds."),
    hours: Optional[float] = typer.Option(None, "--hours", help="Window length when --start is omitted."),
    recent: int = typer.Option(5, "--recent", help="Number of recent measurements to show."),
) -> None:
    """Show statistics and recent measurements for one device."""
    state = _get_state(ctx)
    selectors = _selectors(metric)
    snapshot = _snapshot(state, device_id, _window(state, start, end, hours), selectors)
    render_snapshot(snapshot, recent=recent)


@app.command("report")
def report_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    start: Optional[float] = typer.Option(None, "--start", help="Window start, epoch seconds."),
    end: Optional[float] = typer.Option(None, "--end", help="Window end, epoch seconds."),
    hours: Optional[float] = typer.Option(None, "--hours", help="Window length when --start is omitted."),
    full: bool = typer.Option(False, "--full/--basic", help="Include raw timestamps and auxiliary metrics."),
) -> None:
    """Write report rows for one device as CSV to stdout."""
    state = _get_state(ctx)
    snapshot = _snapshot(state, device_id, _window(state, start, end, hours), full_report=full)
    if not snapshot.rows:
        typer.secho("No data for this selection.", fg=typer.colors.YELLOW, err=True)
        return
    write_rows_csv(snapshot.rows, sys.stdout)


@app.command("watch")
def watch_command(
    ctx: typer.Context,
    device_id: str = typer.Argument(..., help="Device identifier."),
    interval: Optional[float] = typer.Option(None, "--interval", help="Seconds between refreshes."),
    hours: Optional[float] = typer.Option(None, "--hours", help="Rolling window length in hours."),
    cycles: int = typer.Option(0, "--cycles", help="Stop after this many refreshes (0 runs until interrupted)."),
) -> None:
    """Refresh a device on an interval over a rolling window."""
    state = _get_state(ctx)
    try:
        profile = state.registry.get_profile(device_id)
    except TelemetrySourceError as exc:
        _fail(exc)

    period = interval if interval and interval > 0 else state.config.refresh_interval
    rendered = 0
    finished = threading.Event()

    def on_update(snapshot: DashboardSnapshot) -> None:
        nonlocal rendered
        if finished.is_set():
            return
        if rendered:
            typer.echo()
        render_snapshot(snapshot)
        rendered += 1
        if cycles > 0 and rendered >= cycles:
            finished.set()

    scheduler = RefreshScheduler(
        fetch=lambda selection: state.source.fetch_device_data(selection.device_id, selection.window),
        pipeline=build_default_pipeline(),
        interval=period,
        on_update=on_update,
    )
    rolling_hours = hours or state.config.window_hours
    scheduler.select(
        Selection(
            device_id,
            _window(state, None, None, rolling_hours),
            profile,
            rolling_hours=rolling_hours,
        )
    )

    scheduler.start()
    try:
        while not finished.wait(0.5):
            pass
    except KeyboardInterrupt:
        typer.echo("Stopped.")
    finally:
        scheduler.stop(timeout=period)
