from __future__ import annotations

from typing import Iterable

from services.pipeline import build_default_pipeline
from settings import get_settings
from sources.registry import build_default_registry
from sources.telemetry import build_default_source


def _clear_caches(caches: Iterable) -> None:
    for cache in caches:
        cache.cache_clear()


def test_environment_overrides_apply(monkeypatch) -> None:
    monkeypatch.setenv("TELEMETRY_API_URL", "http://telemetry.internal/")
    monkeypatch.setenv("REGISTRY_API_URL", "http://registry.internal")
    monkeypatch.setenv("TELEMETRY_COMPANY", "CompanyB")
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "5")
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "120")
    monkeypatch.setenv("DEFAULT_WINDOW_HOURS", "12")
    monkeypatch.setenv("VOLTAGE_HIGH_THRESHOLD", "3.3")
    monkeypatch.setenv("RSSI_NORMAL_THRESHOLD", "-80")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    caches = (
        get_settings,
        build_default_source,
        build_default_registry,
        build_default_pipeline,
    )
    _clear_caches(caches)

    source = build_default_source()
    registry = build_default_registry()
    pipeline = build_default_pipeline()

    try:
        settings = get_settings()
        assert settings.http_timeout == 5.0
        assert settings.refresh_interval == 120.0
        assert settings.default_window_hours == 12.0
        assert settings.log_level == "DEBUG"

        assert source.base_url == "http://telemetry.internal"
        assert source.company == "CompanyB"
        assert registry.base_url == "http://registry.internal"
        assert registry.company == "CompanyB"

        assert pipeline.thresholds["voltage"].value == 3.3
        assert pipeline.thresholds["voltage"].labels == ("High", "Normal")
        assert pipeline.thresholds["RSSI"].value == -80.0
        assert pipeline.thresholds["RSSI"].labels == ("Normal", "Low")
    finally:
        source.close()
        registry.close()
        _clear_caches(caches)


def test_invalid_values_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("HTTP_TIMEOUT_SECONDS", "-1")
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "soon")
    monkeypatch.setenv("DEFAULT_WINDOW_HOURS", "")
    monkeypatch.setenv("VOLTAGE_HIGH_THRESHOLD", "nan")

    get_settings.cache_clear()
    try:
        settings = get_settings()
        assert settings.http_timeout == 30.0
        assert settings.refresh_interval == 600.0
        assert settings.default_window_hours == 48.0
        assert settings.voltage_threshold == 10.0
    finally:
        get_settings.cache_clear()
