"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from models.records import NO_DATA, DeviceProfile, Series, TimeWindow
from services.normalizer import DiscardedRecord
from services.pipeline import DashboardSnapshot
from services.statistics import SeriesSummary


class PointOut(BaseModel):
    x: float
    y: float
    voltage: Optional[float] = None
    rssi: Optional[float] = None
    packet_count: Optional[float] = None
    filled: bool = False


class SeriesOut(BaseModel):
    """One chart line."""

    id: str
    color: str
    label: str
    data: List[PointOut] = Field(default_factory=list)

    @classmethod
    def from_series(cls, series: Series) -> "SeriesOut":
        return cls(
            id=series.id,
            color=series.color,
            label=series.label,
            data=[
                PointOut(
                    x=point.x,
                    y=point.y,
                    voltage=point.voltage,
                    rssi=point.rssi,
                    packet_count=point.packet_count,
                    filled=point.filled,
                )
                for point in series.points
            ],
        )


class WindowOut(BaseModel):
    start: float
    end: float


class SummaryOut(BaseModel):
    """Statistics for the primary series; ``null`` values mean no data, never zero."""

    series_id: str
    reading_count: int = Field(..., ge=0)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    mean_value: Optional[float] = None
    last_value: Optional[float] = None
    last_value_display: str
    elapsed_seconds: Optional[float] = None
    elapsed_display: str
    threshold: Optional[float] = None
    exceeding_count: int = Field(default=0, ge=0)
    classification: Optional[str] = None
    out_of_range_count: int = Field(default=0, ge=0)
    alarm: bool = False

    @classmethod
    def from_summary(cls, summary: SeriesSummary) -> "SummaryOut":
        last = None if summary.last_value is NO_DATA else summary.last_value
        elapsed = None if summary.elapsed is NO_DATA else summary.elapsed.total_seconds
        return cls(
            series_id=summary.series_id,
            reading_count=summary.reading_count,
            min_value=summary.min_value,
            max_value=summary.max_value,
            mean_value=summary.mean_value,
            last_value=last,
            last_value_display=str(NO_DATA) if last is None else f"{last:.1f}",
            elapsed_seconds=elapsed,
            elapsed_display=str(summary.elapsed),
            threshold=summary.threshold,
            exceeding_count=summary.exceeding_count,
            classification=None if summary.classification is NO_DATA else summary.classification,
            out_of_range_count=summary.out_of_range_count,
            alarm=summary.alarm,
        )


class DiscardedOut(BaseModel):
    index: int = Field(..., ge=0)
    reason: str

    @classmethod
    def from_record(cls, record: DiscardedRecord) -> "DiscardedOut":
        return cls(index=record.index, reason=record.reason)


class SeriesResponse(BaseModel):
    device_id: str
    window: Optional[WindowOut] = None
    series: List[SeriesOut] = Field(default_factory=list)
    summary: Optional[SummaryOut] = None
    discarded: int = Field(default=0, ge=0)
    errors: List[DiscardedOut] = Field(default_factory=list)

    @classmethod
    def from_snapshot(cls, device_id: str, snapshot: DashboardSnapshot) -> "SeriesResponse":
        return cls(
            device_id=device_id,
            window=_window_out(snapshot.window),
            series=[SeriesOut.from_series(series) for series in snapshot.series],
            summary=SummaryOut.from_summary(snapshot.summary) if snapshot.summary else None,
            discarded=snapshot.discarded,
            errors=[DiscardedOut.from_record(error) for error in snapshot.errors],
        )


class ReportResponse(BaseModel):
    device_id: str
    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class DeviceOut(BaseModel):
    device_id: str
    type: Optional[str] = None
    company: Optional[str] = None
    name: Optional[str] = None
    max_temp: Optional[float] = None
    min_temp: Optional[float] = None
    wrongs_before_alarm: Optional[int] = None
    last_temperature: Optional[float] = None
    last_timestamp: Optional[float] = None
    range_status: Optional[str] = None

    @classmethod
    def from_profile(cls, profile: DeviceProfile, range_status: Optional[str] = None) -> "DeviceOut":
        return cls(
            device_id=profile.device_id,
            type=profile.type,
            company=profile.company,
            name=profile.name,
            max_temp=profile.max_temp,
            min_temp=profile.min_temp,
            wrongs_before_alarm=profile.wrongs_before_alarm,
            last_temperature=profile.last_temperature,
            last_timestamp=profile.last_timestamp,
            range_status=range_status,
        )


class DeviceListResponse(BaseModel):
    types: List[str] = Field(default_factory=list)
    devices: List[DeviceOut] = Field(default_factory=list)
    missing: List[str] = Field(default_factory=list)


def _window_out(window: Optional[TimeWindow]) -> Optional[WindowOut]:
    if window is None:
        return None
    return WindowOut(start=window.start, end=window.end)
