"""Derived statistics over a single series."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from models.records import NO_DATA, DeviceProfile, NoData, Point, Series

MaybeValue = Union[float, NoData]

IN_RANGE = "in_range"
OUT_OF_RANGE = "out_of_range"


@dataclass(slots=True, frozen=True)
class ElapsedTime:
    """Span between the first and last sample of a series."""

    total_seconds: float

    @property
    def minutes(self) -> int:
        return int(self.total_seconds // 60)

    @property
    def seconds(self) -> int:
        return int(self.total_seconds % 60)

    def __str__(self) -> str:
        return f"{self.minutes} min {self.seconds} s"


@dataclass
class SeriesSummary:
    """Computed statistics for one series."""

    series_id: str
    reading_count: int = 0
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None
    last_value: MaybeValue = NO_DATA
    elapsed: Union[ElapsedTime, NoData] = NO_DATA
    threshold: Optional[float] = None
    exceeding_count: int = 0
    classification: Union[str, NoData] = NO_DATA
    out_of_range_count: int = 0
    alarm: bool = False


def last_value(series: Series) -> MaybeValue:
    if not series.points:
        return NO_DATA
    return series.points[-1].rounded


def format_value(value: MaybeValue, unit: str = "") -> str:
    if value is NO_DATA:
        return str(NO_DATA)
    return f"{value:.1f}{unit}"


def classify(
    value: MaybeValue,
    threshold: float,
    labels: Tuple[str, str] = ("high", "normal"),
) -> Union[str, NoData]:
    """Label ``value`` against ``threshold``; the first label wins only when strictly greater."""
    if value is NO_DATA:
        return NO_DATA
    above, otherwise = labels
    return above if value > threshold else otherwise


def measured(series: Series) -> List[Point]:
    """Points backed by an actual reading of the metric."""
    return [point for point in series.points if not point.filled]


def count_exceeding(series: Series, threshold: float) -> int:
    return sum(1 for point in measured(series) if point.y > threshold)


def _is_outside(value: float, lower: Optional[float], upper: Optional[float]) -> bool:
    if lower is not None and value < lower:
        return True
    if upper is not None and value > upper:
        return True
    return False


def count_outside(series: Series, lower: Optional[float], upper: Optional[float]) -> int:
    """Count points strictly below ``lower`` or strictly above ``upper``; ``None`` disables a bound."""
    return sum(1 for point in measured(series) if _is_outside(point.y, lower, upper))


def range_status(
    value: MaybeValue, lower: Optional[float], upper: Optional[float]
) -> Union[str, NoData]:
    if value is NO_DATA:
        return NO_DATA
    return OUT_OF_RANGE if _is_outside(value, lower, upper) else IN_RANGE


def alarm_triggered(series: Series, profile: DeviceProfile) -> bool:
    """True once the out-of-range count reaches the profile's tolerance."""
    tolerance = profile.wrongs_before_alarm
    if tolerance is None or tolerance <= 0:
        return False
    if profile.min_temp is None and profile.max_temp is None:
        return False
    return count_outside(series, profile.min_temp, profile.max_temp) >= tolerance


def elapsed(series: Series) -> Union[ElapsedTime, NoData]:
    if len(series.points) < 2:
        return NO_DATA
    return ElapsedTime(total_seconds=series.points[-1].x - series.points[0].x)


def recent_points(series: Series, limit: int = 5) -> List[Point]:
    if limit <= 0:
        return []
    return list(series.points[-limit:])


def summarize(
    series: Series,
    threshold: Optional[float] = None,
    labels: Tuple[str, str] = ("high", "normal"),
    profile: Optional[DeviceProfile] = None,
) -> SeriesSummary:
    summary = SeriesSummary(series_id=series.id, reading_count=len(series.points), threshold=threshold)

    # Zero-filled placeholders are plotted but never measured.
    values = [point.y for point in measured(series)]
    if values:
        summary.min_value = min(values)
        summary.max_value = max(values)
        summary.mean_value = sum(values) / len(values)

    summary.last_value = last_value(series)
    summary.elapsed = elapsed(series)

    if threshold is not None:
        summary.exceeding_count = count_exceeding(series, threshold)
        summary.classification = classify(summary.last_value, threshold, labels)

    if profile is not None:
        summary.out_of_range_count = count_outside(series, profile.min_temp, profile.max_temp)
        summary.alarm = alarm_triggered(series, profile)

    return summary
