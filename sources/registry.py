"""Client for the device registry holding per-sensor thresholds."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Iterable, List, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from models.records import DeviceProfile
from settings import get_settings
from sources.telemetry import TelemetrySourceError

logger = logging.getLogger(__name__)


class DeviceProfilePayload(BaseModel):
    """Registry entry as served by the API, with its camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    device_id: str = Field(..., min_length=1)
    type: Optional[str] = None
    company: Optional[str] = None
    name: Optional[str] = None
    max_temp: Optional[float] = Field(default=None, alias="maxTemp")
    min_temp: Optional[float] = Field(default=None, alias="minTemp")
    wrongs_before_alarm: Optional[int] = Field(default=None, alias="wrongsBeforeAlarm")
    last_temperature: Optional[float] = None
    last_timestamp: Optional[float] = None

    @field_validator(
        "max_temp", "min_temp", "wrongs_before_alarm", "last_temperature", "last_timestamp",
        mode="before",
    )
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        # The registry UI saves untouched numeric fields as empty strings.
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("device_id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def to_profile(self) -> DeviceProfile:
        return DeviceProfile(**self.model_dump())


def parse_profiles(payload: Any) -> List[DeviceProfile]:
    """Validate registry entries, skipping the ones that do not describe a device."""
    if not isinstance(payload, list):
        raise TelemetrySourceError("Device registry response is not an array.")

    profiles: List[DeviceProfile] = []
    for entry in payload:
        try:
            profiles.append(DeviceProfilePayload.model_validate(entry).to_profile())
        except ValidationError as exc:
            logger.warning(
                "Skipping invalid registry entry",
                extra={"reason": f"{exc.error_count()} validation error(s)"},
            )
    return profiles


def device_types(profiles: Iterable[DeviceProfile]) -> List[str]:
    """Distinct device types in first-seen order, ignoring untyped devices."""
    seen: dict[str, None] = {}
    for profile in profiles:
        if profile.type:
            seen.setdefault(profile.type, None)
    return list(seen)


def filter_by_type(profiles: Iterable[DeviceProfile], device_type: str) -> List[DeviceProfile]:
    return [profile for profile in profiles if profile.type == device_type]


def missing_devices(device_ids: Iterable[str], profiles: Iterable[DeviceProfile]) -> List[str]:
    """Ids reported by telemetry that have no registry entry yet."""
    known = {profile.device_id for profile in profiles}
    return [device_id for device_id in device_ids if device_id not in known]


class DeviceRegistry:

    def __init__(
        self,
        base_url: str,
        company: str,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.company = company
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def list_profiles(self) -> List[DeviceProfile]:
        try:
            response = self._client.get("/sensors", params={"company": self.company})
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as exc:
            raise TelemetrySourceError(f"Device registry request failed: {exc}") from exc
        except ValueError as exc:
            raise TelemetrySourceError("Device registry response is not valid JSON.") from exc
        return parse_profiles(payload)

    def get_profile(self, device_id: str) -> Optional[DeviceProfile]:
        for profile in self.list_profiles():
            if profile.device_id == device_id:
                return profile
        return None


@lru_cache
def build_default_registry() -> DeviceRegistry:
    settings = get_settings()
    return DeviceRegistry(
        base_url=settings.registry_api_url,
        company=settings.company,
        timeout=settings.http_timeout,
    )
