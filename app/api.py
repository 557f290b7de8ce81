"""HTTP route definitions for the service."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.schemas import DeviceListResponse, DeviceOut, ReportResponse, SeriesResponse
from models.records import NO_DATA, DeviceProfile
from services.exporter import columns
from services.pipeline import DashboardSnapshot, TelemetryPipeline, build_default_pipeline
from services.statistics import range_status
from services.window import resolve_window
from settings import get_settings
from sources.registry import (
    DeviceRegistry,
    build_default_registry,
    device_types,
    filter_by_type,
    missing_devices,
)
from sources.telemetry import TelemetrySource, TelemetrySourceError, build_default_source

router = APIRouter()


def get_source() -> TelemetrySource:
    return build_default_source()


def get_registry() -> DeviceRegistry:
    return build_default_registry()


def get_pipeline() -> TelemetryPipeline:
    return build_default_pipeline()


def _bad_gateway(exc: TelemetrySourceError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc))


def _load_snapshot(
    device_id: str,
    start: Optional[float],
    end: Optional[float],
    source: TelemetrySource,
    registry: DeviceRegistry,
    pipeline: TelemetryPipeline,
    full_report: bool = False,
) -> DashboardSnapshot:
    try:
        window = resolve_window(start, end, default_hours=get_settings().default_window_hours)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    try:
        profile: Optional[DeviceProfile] = registry.get_profile(device_id)
        records = source.fetch_device_data(device_id, window)
    except TelemetrySourceError as exc:
        raise _bad_gateway(exc) from exc
    return pipeline.run(
        records,
        device_id=device_id,
        window=window,
        profile=profile,
        full_report=full_report,
    )


@router.get(
    "/devices",
    response_model=DeviceListResponse,
    summary="List registered devices, their types and unregistered telemetry ids.",
)
async def list_devices(
    device_type: Optional[str] = Query(None, alias="type"),
    source: TelemetrySource = Depends(get_source),
    registry: DeviceRegistry = Depends(get_registry),
) -> DeviceListResponse:
    try:
        profiles = registry.list_profiles()
        telemetry_ids = source.list_device_ids()
    except TelemetrySourceError as exc:
        raise _bad_gateway(exc) from exc

    shown = filter_by_type(profiles, device_type) if device_type else profiles
    devices = []
    for profile in shown:
        status_label = None
        if profile.min_temp is not None or profile.max_temp is not None:
            last = profile.last_temperature if profile.last_temperature is not None else NO_DATA
            label = range_status(last, profile.min_temp, profile.max_temp)
            status_label = None if label is NO_DATA else label
        devices.append(DeviceOut.from_profile(profile, status_label))
    return DeviceListResponse(
        types=device_types(profiles),
        devices=devices,
        missing=missing_devices(telemetry_ids, profiles),
    )


@router.get(
    "/devices/{device_id}/series",
    response_model=SeriesResponse,
    summary="Chart series and statistics for one device and time window.",
)
async def get_device_series(
    device_id: str,
    start: Optional[float] = Query(None, description="Window start, epoch seconds."),
    end: Optional[float] = Query(None, description="Window end, epoch seconds."),
    source: TelemetrySource = Depends(get_source),
    registry: DeviceRegistry = Depends(get_registry),
    pipeline: TelemetryPipeline = Depends(get_pipeline),
) -> SeriesResponse:
    snapshot = _load_snapshot(device_id, start, end, source, registry, pipeline)
    return SeriesResponse.from_snapshot(device_id, snapshot)


@router.get(
    "/devices/{device_id}/report",
    response_model=ReportResponse,
    summary="Tabular report rows for one device and time window.",
)
async def get_device_report(
    device_id: str,
    start: Optional[float] = Query(None),
    end: Optional[float] = Query(None),
    full: bool = Query(False, description="Include raw timestamps and auxiliary metrics."),
    source: TelemetrySource = Depends(get_source),
    registry: DeviceRegistry = Depends(get_registry),
    pipeline: TelemetryPipeline = Depends(get_pipeline),
) -> ReportResponse:
    snapshot = _load_snapshot(device_id, start, end, source, registry, pipeline, full_report=full)
    return ReportResponse(device_id=device_id, columns=columns(snapshot.rows), rows=snapshot.rows)


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
