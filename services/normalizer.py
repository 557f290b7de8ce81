"""Validation and ordering of raw telemetry records."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from models.records import METRIC_FIELDS, Reading

logger = logging.getLogger(__name__)

_DEVICE_KEYS = ("device_id", "deviceId", "device")
_METRIC_ALIASES: Dict[str, Tuple[str, ...]] = {
    "temperature": ("temperature",),
    "voltage": ("voltage",),
    "rssi": ("RSSI", "rssi"),
    "packet_count": ("count", "packetCount", "packet_count"),
    "microbial_index": ("N", "microbialIndex", "microbial_index"),
}


@dataclass(slots=True, frozen=True)
class DiscardedRecord:
    index: int
    reason: str


@dataclass
class NormalizationResult:
    """Valid readings in timestamp order plus a tally of what was dropped."""

    readings: List[Reading] = field(default_factory=list)
    errors: List[DiscardedRecord] = field(default_factory=list)

    @property
    def discarded(self) -> int:
        return len(self.errors)

    def by_device(self) -> Dict[str, List[Reading]]:
        return group_by_device(self.readings)


def group_by_device(readings: Iterable[Reading]) -> Dict[str, List[Reading]]:
    """Group readings by device id, keeping first-seen device order."""
    groups: Dict[str, List[Reading]] = {}
    for reading in readings:
        groups.setdefault(reading.device_id, []).append(reading)
    return groups


def parse_number(value: Any) -> Optional[float]:
    """Return a finite float for numbers and numeric strings, else ``None``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        parsed = float(value)
    elif isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return None
        try:
            parsed = float(candidate)
        except ValueError:
            return None
    else:
        return None
    return parsed if math.isfinite(parsed) else None


def _representable(timestamp: float) -> bool:
    """Whether ``timestamp`` converts to a calendar date on this platform."""
    try:
        datetime.fromtimestamp(timestamp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return False
    return True


def _first_present(record: Mapping[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return None


class TelemetryNormalizer:
    """Turns raw telemetry payload entries into ordered ``Reading`` objects."""

    def normalize(self, records: Iterable[Any]) -> NormalizationResult:
        if isinstance(records, (str, bytes, Mapping)) or not isinstance(records, Iterable):
            raise TypeError(
                f"Expected a sequence of telemetry records, got {type(records).__name__}."
            )

        result = NormalizationResult()
        accepted: List[Reading] = []
        for index, record in enumerate(records):
            reading, reason = self._coerce(record)
            if reading is None:
                result.errors.append(DiscardedRecord(index=index, reason=reason or "invalid record"))
                continue
            accepted.append(reading)

        # sorted() is stable, so equal timestamps keep their input order.
        result.readings = sorted(accepted, key=lambda reading: reading.timestamp)

        if result.errors:
            logger.debug(
                "Dropped malformed telemetry records",
                extra={
                    "discarded": result.discarded,
                    "reading_count": len(result.readings),
                },
            )
        return result

    def _coerce(self, record: Any) -> Tuple[Optional[Reading], Optional[str]]:
        if isinstance(record, Reading):
            if not record.device_id:
                return None, "missing device_id"
            timestamp = parse_number(record.timestamp)
            if timestamp is None:
                return None, "invalid timestamp"
            if not _representable(timestamp):
                return None, "timestamp out of range"
            return record, None

        if not isinstance(record, Mapping):
            return None, "unsupported record"

        device_raw = _first_present(record, _DEVICE_KEYS)
        if isinstance(device_raw, bool) or not isinstance(device_raw, (str, int)):
            return None, "missing device_id"
        device_id = str(device_raw).strip()
        if not device_id:
            return None, "missing device_id"

        if record.get("timestamp") is None:
            return None, "missing timestamp"
        timestamp = parse_number(record["timestamp"])
        if timestamp is None:
            return None, "invalid timestamp"
        if not _representable(timestamp):
            return None, "timestamp out of range"

        metrics = {
            name: parse_number(_first_present(record, _METRIC_ALIASES[name]))
            for name in METRIC_FIELDS
        }
        return Reading(device_id=device_id, timestamp=timestamp, **metrics), None
