from __future__ import annotations

import csv
from typing import Any, Iterable, Sequence, TextIO

import typer

from models.records import DeviceProfile
from services.exporter import Row, columns, format_timestamp
from services.pipeline import DashboardSnapshot
from services.statistics import format_value, recent_points


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def _bound(value: float | None) -> str:
    return "-" if value is None else f"{value:g}"


def render_devices(profiles: Sequence[DeviceProfile], missing: Sequence[str] = ()) -> None:
    echo_heading("Devices")
    if not profiles:
        typer.echo("No devices registered.")
    for profile in profiles:
        limits = f"[{_bound(profile.min_temp)}, {_bound(profile.max_temp)}]"
        typer.echo(f"  - {profile.device_id} ({profile.type or 'untyped'}) limits={limits}")
    if missing:
        typer.echo()
        echo_heading("Unregistered")
        for device_id in missing:
            typer.echo(f"  - {device_id}")


def render_snapshot(snapshot: DashboardSnapshot, recent: int = 5) -> None:
    echo_heading(f"Device {snapshot.device_id}")
    if snapshot.window is not None:
        echo_key_values(
            [
                ("window_start", format_timestamp(snapshot.window.start)),
                ("window_end", format_timestamp(snapshot.window.end)),
            ]
        )
    echo_key_values([("discarded", snapshot.discarded)])

    typer.echo()
    echo_heading("Summary")
    summary = snapshot.summary
    if summary is None or summary.reading_count == 0:
        typer.echo("No data for this selection.")
        return

    echo_key_values(
        [
            ("series", summary.series_id),
            ("reading_count", summary.reading_count),
            ("last_value", format_value(summary.last_value)),
            ("elapsed", summary.elapsed),
            ("min_value", summary.min_value),
            ("max_value", summary.max_value),
            ("mean_value", summary.mean_value),
        ]
    )
    if summary.threshold is not None:
        echo_key_values(
            [
                ("threshold", summary.threshold),
                ("classification", summary.classification),
                ("exceeding_count", summary.exceeding_count),
            ]
        )
    if summary.out_of_range_count:
        echo_key_values([("out_of_range_count", summary.out_of_range_count)])
    if summary.alarm:
        typer.secho("ALARM: out-of-range tolerance reached", fg=typer.colors.RED, bold=True)

    typer.echo()
    echo_heading("Recent")
    for point in recent_points(snapshot.series[0], recent):
        typer.echo(f"  - {format_timestamp(point.x)}: {format_value(point.rounded)}")


def write_rows_csv(rows: Sequence[Row], stream: TextIO) -> None:
    writer = csv.DictWriter(stream, fieldnames=columns(rows), lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
