"""Device and time-window filtering over normalized readings."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from models.records import Reading, TimeWindow


def filter_readings(
    readings: Iterable[Reading],
    device_id: Optional[str] = None,
    window: Optional[TimeWindow] = None,
) -> List[Reading]:
    """Return the readings matching ``device_id`` and falling inside ``window``.

    Either filter may be omitted. Input order is preserved, so a sorted input
    yields a sorted output. An inverted window matches nothing.
    """
    if window is not None and window.is_inverted:
        return []

    selected: List[Reading] = []
    for reading in readings:
        if device_id is not None and reading.device_id != device_id:
            continue
        if window is not None and not window.contains(reading.timestamp):
            continue
        selected.append(reading)
    return selected


def device_ids(readings: Iterable[Reading]) -> List[str]:
    """Distinct device ids in first-seen order."""
    seen: dict[str, None] = {}
    for reading in readings:
        seen.setdefault(reading.device_id, None)
    return list(seen)


def resolve_window(
    start: Optional[float],
    end: Optional[float],
    default_hours: float,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """Fill in missing bounds: ``end`` defaults to now, ``start`` to ``default_hours`` before ``end``.

    Raises ``ValueError`` when a given bound is not a finite number.
    """
    for bound in (start, end):
        if bound is not None and not math.isfinite(bound):
            raise ValueError(f"Window bounds must be finite, got {bound!r}.")
    if end is None:
        current = now or datetime.now(timezone.utc)
        end = current.timestamp()
    if start is None:
        start = end - timedelta(hours=default_hours).total_seconds()
    return TimeWindow(start=float(start), end=float(end))
