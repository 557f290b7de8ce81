"""HTTP client for the external telemetry API."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

import httpx

from models.records import TimeWindow
from settings import get_settings

logger = logging.getLogger(__name__)


class TelemetrySourceError(RuntimeError):
    """Raised when an upstream collaborator fails or returns an unusable payload."""


def unwrap_payload(payload: Any) -> List[Any]:
    """Return the record array from either a bare array or a ``{"body": "<json>"}`` envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and "body" in payload:
        body = payload["body"]
        if isinstance(body, str):
            try:
                body = json.loads(body)
            except json.JSONDecodeError as exc:
                raise TelemetrySourceError("Telemetry envelope body is not valid JSON.") from exc
        if isinstance(body, list):
            return body
    raise TelemetrySourceError(
        f"Unexpected telemetry payload of type {type(payload).__name__}."
    )


class TelemetrySource:
    """Thin httpx wrapper over the telemetry endpoints."""

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

    def fetch_device_data(self, device_id: str, window: TimeWindow) -> List[Any]:
        params = {
            "company": self.company,
            "device_id": device_id,
            "start_date": int(window.start),
            "end_date": int(window.end),
        }
        return unwrap_payload(self._get_json("/device-data", params))

    def fetch_readings(self) -> List[Any]:
        """All recent readings for the company, across devices."""
        return unwrap_payload(self._get_json("/temperatures", {"company": self.company}))

    def list_device_ids(self) -> List[str]:
        payload = self._get_json("/devices", {"company": self.company})
        if not isinstance(payload, dict):
            raise TelemetrySourceError("Device list response is not an object.")
        ids = payload.get("device_ids") or []
        return [str(device_id) for device_id in ids]

    def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "Telemetry request rejected",
                extra={"url": str(exc.request.url), "status_code": exc.response.status_code},
            )
            raise TelemetrySourceError(
                f"Telemetry request failed with status {exc.response.status_code}."
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Telemetry request failed", extra={"url": path, "reason": str(exc)}
            )
            raise TelemetrySourceError(f"Telemetry request failed: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise TelemetrySourceError("Telemetry response is not valid JSON.") from exc


@lru_cache
def build_default_source() -> TelemetrySource:
    settings = get_settings()
    return TelemetrySource(
        base_url=settings.telemetry_api_url,
        company=settings.company,
        timeout=settings.http_timeout,
    )
