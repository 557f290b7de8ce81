"""Unit tests for derived statistics."""

from __future__ import annotations

from models.records import NO_DATA, DeviceProfile, Point, Series
from services.statistics import (
    IN_RANGE,
    OUT_OF_RANGE,
    ElapsedTime,
    alarm_triggered,
    classify,
    count_exceeding,
    count_outside,
    elapsed,
    format_value,
    last_value,
    range_status,
    recent_points,
    summarize,
)


def _series(*points: tuple[float, float]) -> Series:
    """Helper to build a deterministic temperature series."""

    return Series(
        id="temperature",
        color="hsl(214, 70%, 50%)",
        label="Temperature",
        points=[Point(x=x, y=y) for x, y in points],
    )


def test_last_value_empty_series_is_no_data() -> None:
    value = last_value(_series())

    assert value is NO_DATA
    assert value != 0
    assert not value
    assert format_value(value) == "No Data"


def test_last_value_rounds_to_one_decimal() -> None:
    assert last_value(_series((1, 7.26))) == 7.3
    assert last_value(_series((1, 2.0), (2, 5.04))) == 5.0
    assert format_value(last_value(_series((1, 0.0)))) == "0.0"


def test_classify_is_strictly_greater() -> None:
    assert classify(10.1, 10) == "high"
    assert classify(10.0, 10) == "normal"
    assert classify(11, 10, labels=("High", "Normal")) == "High"
    assert classify(NO_DATA, 10) is NO_DATA


def test_count_exceeding_excludes_boundary() -> None:
    series = _series((1, 7.9), (2, 8.0), (3, 8.1), (4, 12.0))

    assert count_exceeding(series, 8.0) == 2
    assert count_exceeding(_series(), 8.0) == 0


def test_elapsed_needs_two_points() -> None:
    assert elapsed(_series()) is NO_DATA
    assert elapsed(_series((100, 1.0))) is NO_DATA

    span = elapsed(_series((100, 1.0), (200, 2.0), (845, 3.0)))

    assert span == ElapsedTime(total_seconds=745)
    assert span.minutes == 12
    assert span.seconds == 25
    assert str(span) == "12 min 25 s"


def test_count_outside_and_range_status() -> None:
    series = _series((1, 1.9), (2, 2.0), (3, 5.0), (4, 8.0), (5, 8.5))

    assert count_outside(series, 2.0, 8.0) == 2
    assert count_outside(series, None, 8.0) == 1
    assert count_outside(series, None, None) == 0
    assert range_status(8.5, 2.0, 8.0) == OUT_OF_RANGE
    assert range_status(8.0, 2.0, 8.0) == IN_RANGE
    assert range_status(NO_DATA, 2.0, 8.0) is NO_DATA


def test_alarm_triggered_when_tolerance_reached() -> None:
    series = _series((1, 9.0), (2, 1.0), (3, 5.0))
    profile = DeviceProfile(device_id="A", min_temp=2.0, max_temp=8.0, wrongs_before_alarm=2)

    assert alarm_triggered(series, profile) is True
    assert alarm_triggered(series, DeviceProfile(device_id="A", min_temp=2.0, max_temp=8.0, wrongs_before_alarm=3)) is False
    assert alarm_triggered(series, DeviceProfile(device_id="A", wrongs_before_alarm=1)) is False
    assert alarm_triggered(series, DeviceProfile(device_id="A", max_temp=8.0)) is False


def test_recent_points_returns_tail() -> None:
    series = _series(*((ts, float(ts)) for ts in range(1, 8)))

    assert [point.x for point in recent_points(series)] == [3, 4, 5, 6, 7]
    assert [point.x for point in recent_points(series, 2)] == [6, 7]
    assert recent_points(series, 0) == []
    assert recent_points(_series()) == []


def test_summarize_empty_series_returns_defaults() -> None:
    summary = summarize(_series(), threshold=8.0)

    assert summary.reading_count == 0
    assert summary.min_value is None
    assert summary.max_value is None
    assert summary.mean_value is None
    assert summary.last_value is NO_DATA
    assert summary.elapsed is NO_DATA
    assert summary.classification is NO_DATA
    assert summary.exceeding_count == 0


def test_summarize_computes_statistics() -> None:
    series = _series((0, 4.0), (60, 10.0), (150, 7.0))
    profile = DeviceProfile(device_id="A", min_temp=5.0, max_temp=8.0, wrongs_before_alarm=2)

    summary = summarize(series, threshold=8.0, profile=profile)

    assert summary.reading_count == 3
    assert summary.min_value == 4.0
    assert summary.max_value == 10.0
    assert summary.mean_value == 7.0
    assert summary.last_value == 7.0
    assert summary.elapsed == ElapsedTime(total_seconds=150)
    assert summary.exceeding_count == 1
    assert summary.classification == "normal"
    assert summary.out_of_range_count == 2
    assert summary.alarm is True


def test_zero_filled_points_are_not_measurements() -> None:
    series = Series(
        id="temperature",
        color="hsl(214, 70%, 50%)",
        label="Temperature",
        points=[
            Point(x=1, y=4.0),
            Point(x=2, y=0.0, filled=True),
            Point(x=3, y=0.0, filled=True),
        ],
    )
    profile = DeviceProfile(device_id="A", min_temp=2.0, max_temp=8.0, wrongs_before_alarm=2)

    summary = summarize(series, threshold=-1.0, profile=profile)

    assert count_outside(series, 2.0, 8.0) == 0
    assert count_exceeding(series, -1.0) == 1
    assert alarm_triggered(series, profile) is False
    assert summary.reading_count == 3
    assert summary.min_value == 4.0
    assert summary.max_value == 4.0
    assert summary.mean_value == 4.0
    assert summary.out_of_range_count == 0
    assert summary.alarm is False


def test_summarize_series_without_measurements() -> None:
    series = _series()
    series.points.append(Point(x=1, y=0.0, filled=True))

    summary = summarize(series)

    assert summary.reading_count == 1
    assert summary.min_value is None
    assert summary.mean_value is None
