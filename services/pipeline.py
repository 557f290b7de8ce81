"""End-to-end wiring of the telemetry transformation stages."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from models.records import DeviceProfile, MetricSelector, Series, TimeWindow
from services.composer import RSSI, VOLTAGE, SeriesComposer
from services.exporter import ReportExporter, Row
from services.normalizer import DiscardedRecord, TelemetryNormalizer
from services.statistics import SeriesSummary, summarize
from services.window import filter_readings
from settings import get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Threshold:
    value: float
    labels: Tuple[str, str] = ("high", "normal")


@dataclass
class DashboardSnapshot:
    """Everything a presentation layer needs for one device and window."""

    device_id: Optional[str]
    window: Optional[TimeWindow]
    series: List[Series] = field(default_factory=list)
    summary: Optional[SeriesSummary] = None
    rows: List[Row] = field(default_factory=list)
    errors: List[DiscardedRecord] = field(default_factory=list)

    @property
    def discarded(self) -> int:
        return len(self.errors)

    @property
    def has_data(self) -> bool:
        return any(not series.is_empty for series in self.series)


class TelemetryPipeline:
    """Runs normalize, filter, compose, then statistics and report rows."""

    def __init__(
        self,
        normalizer: TelemetryNormalizer,
        composer: SeriesComposer,
        exporter: ReportExporter,
        thresholds: Optional[Dict[str, Threshold]] = None,
    ) -> None:
        self.normalizer = normalizer
        self.composer = composer
        self.exporter = exporter
        self.thresholds: Dict[str, Threshold] = dict(thresholds or {})

    def run(
        self,
        records: Iterable[Any],
        device_id: Optional[str] = None,
        window: Optional[TimeWindow] = None,
        profile: Optional[DeviceProfile] = None,
        selectors: Optional[Sequence[MetricSelector]] = None,
        full_report: bool = False,
    ) -> DashboardSnapshot:
        normalized = self.normalizer.normalize(records)
        selected = filter_readings(normalized.readings, device_id=device_id, window=window)
        series = self.composer.compose(selected, selectors)

        snapshot = DashboardSnapshot(
            device_id=device_id,
            window=window,
            series=series,
            errors=list(normalized.errors),
        )
        if series:
            primary = series[0]
            threshold = self._threshold_for(primary.id, profile)
            snapshot.summary = summarize(
                primary,
                threshold=threshold.value if threshold else None,
                labels=threshold.labels if threshold else ("high", "normal"),
                profile=profile,
            )
            if full_report:
                snapshot.rows = self.exporter.build_full_rows(series)
            else:
                snapshot.rows = self.exporter.build_rows(
                    primary, {other.label: other for other in series[1:]}
                )

        logger.info(
            "Telemetry pipeline run complete",
            extra={
                "device_id": device_id,
                "reading_count": len(selected),
                "series_count": len(series),
                "discarded": snapshot.discarded,
            },
        )
        return snapshot

    def _threshold_for(
        self, series_id: str, profile: Optional[DeviceProfile]
    ) -> Optional[Threshold]:
        # A device's registry maximum takes precedence for its temperature series.
        if series_id == "temperature" and profile is not None and profile.max_temp is not None:
            return Threshold(value=profile.max_temp)
        return self.thresholds.get(series_id)


@lru_cache
def build_default_pipeline() -> TelemetryPipeline:
    """Factory that wires the pipeline with thresholds from settings."""
    settings = get_settings()
    thresholds = {
        VOLTAGE.series_id: Threshold(value=settings.voltage_threshold, labels=("High", "Normal")),
        RSSI.series_id: Threshold(value=settings.rssi_threshold, labels=("Normal", "Low")),
    }
    return TelemetryPipeline(
        normalizer=TelemetryNormalizer(),
        composer=SeriesComposer(),
        exporter=ReportExporter(),
        thresholds=thresholds,
    )
