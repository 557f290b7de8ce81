"""Reshape readings into chart-ready series."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from models.records import MetricSelector, Point, Reading, Series


TEMPERATURE = MetricSelector(
    field="temperature", series_id="temperature", color="hsl(214, 70%, 50%)", label="Temperature"
)
MICROBIAL_INDEX = MetricSelector(
    field="microbial_index", series_id="N", color="hsl(153, 70%, 50%)", label="N"
)
VOLTAGE = MetricSelector(
    field="voltage", series_id="voltage", color="hsl(45, 70%, 50%)", label="Voltage"
)
RSSI = MetricSelector(field="rssi", series_id="RSSI", color="hsl(45, 70%, 50%)", label="RSSI")
PACKETS = MetricSelector(
    field="packet_count", series_id="packets", color="hsl(280, 70%, 50%)", label="Packages"
)

DEFAULT_SELECTORS: tuple[MetricSelector, ...] = (TEMPERATURE, MICROBIAL_INDEX)

SELECTORS_BY_ID = {
    selector.series_id: selector
    for selector in (TEMPERATURE, MICROBIAL_INDEX, VOLTAGE, RSSI, PACKETS)
}


def _point(reading: Reading, field: str, **auxiliary: Optional[float]) -> Point:
    value = reading.metric(field)
    if value is None:
        return Point(x=reading.timestamp, y=0.0, filled=True, **auxiliary)
    return Point(x=reading.timestamp, y=value, **auxiliary)


class SeriesComposer:
    """Builds one series per selector; the first selector is the primary one.

    Points of the primary series carry voltage, RSSI and packet count taken
    from the same reading so reports can be built without a second join.
    """

    def compose(
        self,
        readings: Iterable[Reading],
        selectors: Optional[Sequence[MetricSelector]] = None,
    ) -> List[Series]:
        chosen = tuple(DEFAULT_SELECTORS if selectors is None else selectors)
        if not chosen:
            return []

        samples = list(readings)
        primary, *secondary = chosen
        series = [
            Series(
                id=primary.series_id,
                color=primary.color,
                label=primary.label,
                points=[
                    _point(
                        reading,
                        primary.field,
                        voltage=reading.voltage,
                        rssi=reading.rssi,
                        packet_count=reading.packet_count,
                    )
                    for reading in samples
                ],
            )
        ]
        for selector in secondary:
            series.append(
                Series(
                    id=selector.series_id,
                    color=selector.color,
                    label=selector.label,
                    points=[_point(reading, selector.field) for reading in samples],
                )
            )
        return series
