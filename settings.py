from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache


_TELEMETRY_URL_ENV = "TELEMETRY_API_URL"
_REGISTRY_URL_ENV = "REGISTRY_API_URL"
_COMPANY_ENV = "TELEMETRY_COMPANY"
_HTTP_TIMEOUT_ENV = "HTTP_TIMEOUT_SECONDS"
_REFRESH_INTERVAL_ENV = "REFRESH_INTERVAL_SECONDS"
_WINDOW_HOURS_ENV = "DEFAULT_WINDOW_HOURS"
_VOLTAGE_THRESHOLD_ENV = "VOLTAGE_HIGH_THRESHOLD"
_RSSI_THRESHOLD_ENV = "RSSI_NORMAL_THRESHOLD"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    telemetry_api_url: str
    registry_api_url: str
    company: str
    http_timeout: float
    refresh_interval: float
    default_window_hours: float
    voltage_threshold: float
    rssi_threshold: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_positive_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    if not math.isfinite(parsed):
        return default
    return parsed if parsed > 0 else default


def _read_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if math.isfinite(parsed) else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        telemetry_api_url=_read_str_env(_TELEMETRY_URL_ENV, "http://localhost:9000").rstrip("/"),
        registry_api_url=_read_str_env(_REGISTRY_URL_ENV, "http://localhost:9001").rstrip("/"),
        company=_read_str_env(_COMPANY_ENV, "CompanyA"),
        http_timeout=_read_positive_float(_HTTP_TIMEOUT_ENV, 30.0),
        refresh_interval=_read_positive_float(_REFRESH_INTERVAL_ENV, 600.0),
        default_window_hours=_read_positive_float(_WINDOW_HOURS_ENV, 48.0),
        voltage_threshold=_read_float(_VOLTAGE_THRESHOLD_ENV, 10.0),
        rssi_threshold=_read_float(_RSSI_THRESHOLD_ENV, 10.0),
        log_level=_read_log_level("INFO"),
    )
