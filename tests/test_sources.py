"""Tests for the telemetry and registry HTTP clients."""

from __future__ import annotations

import json
import logging
from typing import Callable, List

import httpx
import pytest

from models.records import DeviceProfile, TimeWindow
from sources.registry import (
    DeviceRegistry,
    device_types,
    filter_by_type,
    missing_devices,
    parse_profiles,
)
from sources.telemetry import TelemetrySource, TelemetrySourceError, unwrap_payload


def _transport(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.MockTransport:
    return httpx.MockTransport(handler)


def test_unwrap_payload_accepts_array_and_envelope() -> None:
    records = [{"device_id": "A", "timestamp": 1}]

    assert unwrap_payload(records) == records
    assert unwrap_payload({"body": json.dumps(records)}) == records
    assert unwrap_payload({"body": records}) == records


@pytest.mark.parametrize("payload", [{"body": "{not json"}, {"body": "{}"}, {"items": []}, "text", None])
def test_unwrap_payload_rejects_other_shapes(payload: object) -> None:
    with pytest.raises(TelemetrySourceError):
        unwrap_payload(payload)


def test_fetch_device_data_sends_window_and_company() -> None:
    requests: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[{"device_id": "A", "timestamp": 5}])

    source = TelemetrySource("http://telemetry", "CompanyA", transport=_transport(handler))
    try:
        records = source.fetch_device_data("A", TimeWindow(start=100.7, end=200.2))
    finally:
        source.close()

    assert records == [{"device_id": "A", "timestamp": 5}]
    params = requests[0].url.params
    assert requests[0].url.path == "/device-data"
    assert params["company"] == "CompanyA"
    assert params["device_id"] == "A"
    assert params["start_date"] == "100"
    assert params["end_date"] == "200"


def test_fetch_readings_unwraps_envelope() -> None:
    body = json.dumps([{"device_id": "A", "timestamp": 1, "RSSI": -70}])

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/temperatures"
        return httpx.Response(200, json={"statusCode": 200, "body": body})

    source = TelemetrySource("http://telemetry", "DumbCompany", transport=_transport(handler))
    try:
        assert source.fetch_readings() == [{"device_id": "A", "timestamp": 1, "RSSI": -70}]
    finally:
        source.close()


def test_list_device_ids() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"device_ids": ["A", 7]})

    source = TelemetrySource("http://telemetry", "CompanyA", transport=_transport(handler))
    try:
        assert source.list_device_ids() == ["A", "7"]
    finally:
        source.close()


def test_http_errors_become_source_errors(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, json={"message": "unavailable"})

    source = TelemetrySource("http://telemetry", "CompanyA", transport=_transport(handler))
    try:
        with caplog.at_level(logging.WARNING, logger="sources.telemetry"):
            with pytest.raises(TelemetrySourceError, match="503"):
                source.fetch_readings()
    finally:
        source.close()

    assert any(getattr(record, "status_code", None) == 503 for record in caplog.records)


def test_transport_errors_become_source_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    source = TelemetrySource("http://telemetry", "CompanyA", transport=_transport(handler))
    try:
        with pytest.raises(TelemetrySourceError):
            source.list_device_ids()
    finally:
        source.close()


def test_parse_profiles_maps_camel_case_and_skips_invalid() -> None:
    payload = [
        {
            "device_id": "A",
            "type": "freezer",
            "company": "CompanyA",
            "maxTemp": "8",
            "minTemp": 2,
            "wrongsBeforeAlarm": 3,
            "last_temperature": 4.2,
            "last_timestamp": 1700000000,
        },
        {"device_id": 42, "type": "truck", "maxTemp": ""},
        {"type": "orphan"},
        {"device_id": "", "type": "blank"},
    ]

    profiles = parse_profiles(payload)

    assert profiles == [
        DeviceProfile(
            device_id="A",
            type="freezer",
            company="CompanyA",
            max_temp=8.0,
            min_temp=2.0,
            wrongs_before_alarm=3,
            last_temperature=4.2,
            last_timestamp=1700000000.0,
        ),
        DeviceProfile(device_id="42", type="truck"),
    ]


def test_parse_profiles_requires_array() -> None:
    with pytest.raises(TelemetrySourceError):
        parse_profiles({"device_id": "A"})


def test_registry_helpers() -> None:
    profiles = [
        DeviceProfile(device_id="A", type="freezer"),
        DeviceProfile(device_id="B", type="truck"),
        DeviceProfile(device_id="C", type="freezer"),
        DeviceProfile(device_id="D"),
    ]

    assert device_types(profiles) == ["freezer", "truck"]
    assert [p.device_id for p in filter_by_type(profiles, "freezer")] == ["A", "C"]
    assert missing_devices(["A", "X", "D", "Y"], profiles) == ["X", "Y"]


def test_registry_get_profile() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/sensors"
        assert request.url.params["company"] == "CompanyA"
        return httpx.Response(200, json=[{"device_id": "A", "maxTemp": 8}, {"device_id": "B"}])

    registry = DeviceRegistry("http://registry", "CompanyA", transport=_transport(handler))
    try:
        assert registry.get_profile("A") == DeviceProfile(device_id="A", max_temp=8.0)
        assert registry.get_profile("missing") is None
    finally:
        registry.close()


def test_registry_errors_become_source_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    registry = DeviceRegistry("http://registry", "CompanyA", transport=_transport(handler))
    try:
        with pytest.raises(TelemetrySourceError):
            registry.list_profiles()
    finally:
        registry.close()
