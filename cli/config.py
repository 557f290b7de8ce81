from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from settings import get_settings


@dataclass(frozen=True)
class CLIConfig:
    telemetry_url: str
    registry_url: str
    company: str
    timeout: float
    refresh_interval: float
    window_hours: float


def _positive_or(value: Optional[float], default: float) -> float:
    if value is None or value <= 0:
        return default
    return value


def load_config(
    telemetry_url: Optional[str] = None,
    registry_url: Optional[str] = None,
    company: Optional[str] = None,
    timeout: Optional[float] = None,
    refresh_interval: Optional[float] = None,
    window_hours: Optional[float] = None,
) -> CLIConfig:
    """Command-line overrides layered over environment settings."""
    settings = get_settings()
    return CLIConfig(
        telemetry_url=(telemetry_url or settings.telemetry_api_url).rstrip("/"),
        registry_url=(registry_url or settings.registry_api_url).rstrip("/"),
        company=company or settings.company,
        timeout=_positive_or(timeout, settings.http_timeout),
        refresh_interval=_positive_or(refresh_interval, settings.refresh_interval),
        window_hours=_positive_or(window_hours, settings.default_window_hours),
    )
