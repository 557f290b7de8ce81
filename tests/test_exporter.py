from __future__ import annotations

from datetime import timedelta, timezone

from models.records import Point, Series
from services.exporter import ReportExporter, columns, format_timestamp


def _temperature(*points: Point) -> Series:
    return Series(id="temperature", color="blue", label="Temperature", points=list(points))


def _n(*values: float) -> Series:
    return Series(
        id="N",
        color="green",
        label="N",
        points=[Point(x=index, y=value) for index, value in enumerate(values)],
    )


def test_absent_secondary_fills_no_data_marker() -> None:
    primary = _temperature(Point(x=0, y=4.5), Point(x=60, y=4.7))

    rows = ReportExporter().build_rows(primary, {"N": None})

    assert rows == [
        {"Timestamp": "1970-01-01 00:00:00", "Temperature": 4.5, "N": "No Data"},
        {"Timestamp": "1970-01-01 00:01:00", "Temperature": 4.7, "N": "No Data"},
    ]


def test_shorter_secondary_is_aligned_by_index() -> None:
    primary = _temperature(Point(x=0, y=1.0), Point(x=1, y=2.0), Point(x=2, y=3.0))

    rows = ReportExporter().build_rows(primary, {"N": _n(0.0, 0.5)})

    assert [row["N"] for row in rows] == [0.0, 0.5, "No Data"]
    assert [row["Temperature"] for row in rows] == [1.0, 2.0, 3.0]


def test_rows_without_secondaries() -> None:
    rows = ReportExporter().build_rows(_temperature(Point(x=0, y=1.0)))

    assert rows == [{"Timestamp": "1970-01-01 00:00:00", "Temperature": 1.0}]
    assert ReportExporter().build_rows(_temperature()) == []


def test_full_rows_include_raw_timestamp_and_auxiliaries() -> None:
    primary = _temperature(
        Point(x=0, y=5.0, voltage=3.6, rssi=-71.0, packet_count=0.0),
        Point(x=30, y=5.5),
    )

    rows = ReportExporter().build_full_rows([primary, _n(1.0, 2.0)])

    assert columns(rows) == [
        "Timestamp",
        "Raw_Timestamp",
        "Temperature",
        "N",
        "Voltage",
        "RSSI",
        "Packages",
    ]
    assert rows[0]["Packages"] == 0.0
    assert rows[0]["Voltage"] == 3.6
    assert rows[1]["Raw_Timestamp"] == 30
    assert rows[1]["Voltage"] == "No Data"
    assert rows[1]["RSSI"] == "No Data"
    assert ReportExporter().build_full_rows([]) == []


def test_format_timestamp_honours_timezone() -> None:
    brt = timezone(timedelta(hours=-3))

    assert format_timestamp(0) == "1970-01-01 00:00:00"
    assert format_timestamp(0, brt) == "1969-12-31 21:00:00"
    assert ReportExporter(tz=brt).build_rows(_temperature(Point(x=0, y=1.0)))[0]["Timestamp"] == (
        "1969-12-31 21:00:00"
    )


def test_unrepresentable_timestamp_formats_as_marker() -> None:
    assert format_timestamp(1e20) == "No Data"


def test_full_rows_keep_composed_column_with_auxiliary_label() -> None:
    primary = Series(
        id="voltage",
        color="yellow",
        label="Voltage",
        points=[Point(x=0, y=0.0, filled=True), Point(x=60, y=3.3, voltage=3.3)],
    )

    rows = ReportExporter().build_full_rows([primary])

    assert [row["Voltage"] for row in rows] == [0.0, 3.3]
    assert rows[0]["RSSI"] == "No Data"
