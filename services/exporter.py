"""Flatten composed series into report rows."""

from __future__ import annotations

from datetime import datetime, timezone, tzinfo
from typing import Any, Dict, List, Mapping, Optional, Sequence

from models.records import NO_DATA_MARKER, Series

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

Row = Dict[str, Any]


def format_timestamp(timestamp: float, tz: tzinfo = timezone.utc) -> str:
    try:
        return datetime.fromtimestamp(timestamp, tz=tz).strftime(TIMESTAMP_FORMAT)
    except (OverflowError, OSError, ValueError):
        return NO_DATA_MARKER


def _or_marker(value: Optional[float]) -> Any:
    return NO_DATA_MARKER if value is None else value


class ReportExporter:
    """Builds spreadsheet-ready rows; writing them anywhere is the caller's job."""

    def __init__(self, tz: tzinfo = timezone.utc) -> None:
        self.tz = tz

    def build_rows(
        self,
        primary: Series,
        secondaries: Optional[Mapping[str, Optional[Series]]] = None,
    ) -> List[Row]:
        """One row per primary point; secondaries are matched by index.

        A secondary that is ``None`` or shorter than the primary contributes
        the "No Data" marker for the missing positions.
        """
        columns = dict(secondaries or {})
        rows: List[Row] = []
        for index, point in enumerate(primary.points):
            row: Row = {
                "Timestamp": format_timestamp(point.x, self.tz),
                primary.label: point.y,
            }
            for label, series in columns.items():
                if series is not None and index < len(series.points):
                    row[label] = series.points[index].y
                else:
                    row[label] = NO_DATA_MARKER
            rows.append(row)
        return rows

    def build_full_rows(self, series: Sequence[Series]) -> List[Row]:
        """Rows for every composed series plus the primary point auxiliaries."""
        if not series:
            return []
        primary, *others = series
        rows = self.build_rows(primary, {other.label: other for other in others})
        for row, point in zip(rows, primary.points):
            row["Raw_Timestamp"] = point.x
            # A composed series under the same label keeps its column.
            row.setdefault("Voltage", _or_marker(point.voltage))
            row.setdefault("RSSI", _or_marker(point.rssi))
            row.setdefault("Packages", _or_marker(point.packet_count))
        return [self._reorder(row) for row in rows]

    @staticmethod
    def _reorder(row: Row) -> Row:
        ordered: Row = {"Timestamp": row["Timestamp"], "Raw_Timestamp": row["Raw_Timestamp"]}
        ordered.update((key, value) for key, value in row.items() if key not in ordered)
        return ordered


def columns(rows: Sequence[Row]) -> List[str]:
    """Header order across ``rows``, first occurrence wins."""
    seen: Dict[str, None] = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)
