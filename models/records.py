"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


NO_DATA_MARKER = "No Data"


class NoData(Enum):
    """Sentinel for statistics that cannot be computed.

    Falsy and never equal to a number, so a missing reading can always be told
    apart from a legitimate ``0.0``.
    """

    token = NO_DATA_MARKER

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return "NO_DATA"

    def __bool__(self) -> bool:
        return False


NO_DATA = NoData.token


@dataclass(slots=True, frozen=True)
class Reading:
    """A single telemetry sample after validation."""

    device_id: str
    timestamp: float
    temperature: Optional[float] = None
    voltage: Optional[float] = None
    rssi: Optional[float] = None
    packet_count: Optional[float] = None
    microbial_index: Optional[float] = None

    def metric(self, name: str) -> Optional[float]:
        return getattr(self, name)


METRIC_FIELDS = ("temperature", "voltage", "rssi", "packet_count", "microbial_index")


@dataclass(slots=True, frozen=True)
class TimeWindow:
    """Time range in epoch seconds, inclusive at both ends."""

    start: float
    end: float

    @property
    def is_inverted(self) -> bool:
        return self.start > self.end

    def contains(self, timestamp: float) -> bool:
        return self.start <= timestamp <= self.end


@dataclass(slots=True)
class Point:
    """One plotted sample; the primary series also carries auxiliary metrics.

    ``filled`` marks a point whose reading lacked the metric, so ``y`` is a
    plotting placeholder rather than a measurement.
    """

    x: float
    y: float
    voltage: Optional[float] = None
    rssi: Optional[float] = None
    packet_count: Optional[float] = None
    filled: bool = False

    @property
    def rounded(self) -> float:
        return round(self.y, 1)


@dataclass(slots=True)
class Series:
    id: str
    color: str
    label: str
    points: List[Point] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.points)

    @property
    def is_empty(self) -> bool:
        return not self.points


@dataclass(slots=True, frozen=True)
class MetricSelector:
    """Maps a Reading field onto an output series."""

    field: str
    series_id: str
    color: str
    label: str


@dataclass(slots=True, frozen=True)
class DeviceProfile:
    """Registry metadata for a single device."""

    device_id: str
    type: Optional[str] = None
    company: Optional[str] = None
    name: Optional[str] = None
    max_temp: Optional[float] = None
    min_temp: Optional[float] = None
    wrongs_before_alarm: Optional[int] = None
    last_temperature: Optional[float] = None
    last_timestamp: Optional[float] = None
