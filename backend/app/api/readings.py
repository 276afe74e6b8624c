from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.scope import PERIOD_PATTERN, load_query_scope
from app.core.config import Settings
from app.db.models import Device
from app.db.session import get_db
from app.dependencies import get_authenticated_device, get_ingest_service, get_settings_from_app
from app.repositories.readings import get_latest_reading
from app.schemas.readings import (
    HistoryPointResponse,
    HistoryResponse,
    LatestReadingResponse,
    ReadingIngestResponse,
    ReadingPayload,
    ReadingResponse,
)
from app.services.bucketizer import bucketize_readings
from app.services.reading_ingest import ReadingIngestService
from app.services.time_range import granularity_for_range


router = APIRouter(prefix="/api/readings", tags=["readings"])


@router.post("", response_model=ReadingIngestResponse, status_code=status.HTTP_201_CREATED)
def ingest_reading(
    payload: ReadingPayload,
    device: Device = Depends(get_authenticated_device),
    ingest_service: ReadingIngestService = Depends(get_ingest_service),
) -> ReadingIngestResponse:
    reading = ingest_service.ingest(device_id=device.id, payload=payload)
    return ReadingIngestResponse(reading=ReadingResponse.model_validate(reading))


@router.get("/latest", response_model=LatestReadingResponse)
def get_latest(
    device_id: str | None = Query(default=None, max_length=64),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_app),
) -> LatestReadingResponse:
    resolved_device_id = device_id or settings.default_device_id
    reading = get_latest_reading(db, device_id=resolved_device_id)
    return LatestReadingResponse(
        device_id=resolved_device_id,
        reading=ReadingResponse.model_validate(reading) if reading is not None else None,
    )


@router.get("/history", response_model=HistoryResponse, response_model_by_alias=True)
def get_history(
    device_id: str | None = Query(default=None, max_length=64),
    period: str | None = Query(default=None, pattern=PERIOD_PATTERN),
    from_value: str | None = Query(default=None, alias="from"),
    to_value: str | None = Query(default=None, alias="to"),
    timezone_name: str | None = Query(default=None, alias="timezone", max_length=64),
    interval_seconds: int | None = Query(default=None, ge=1, le=31 * 86400),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_app),
) -> HistoryResponse:
    scope = load_query_scope(
        db,
        settings=settings,
        device_id=device_id,
        period=period,
        from_value=from_value,
        to_value=to_value,
        timezone_name=timezone_name,
    )
    interval = interval_seconds or granularity_for_range(scope.time_range.duration_seconds)
    buckets = bucketize_readings(scope.readings, interval)
    return HistoryResponse(
        device_id=scope.device_id,
        from_ts=scope.time_range.from_ts,
        to_ts=scope.time_range.to_ts,
        interval_seconds=interval,
        raw_count=len(scope.readings),
        points=[
            HistoryPointResponse(
                timestamp=bucket.timestamp,
                voltage=bucket.voltage,
                peak_voltage=bucket.peak_voltage,
                min_voltage=bucket.min_voltage,
                current=bucket.current,
                real_power_kw=bucket.real_power_kw,
                energy_kwh=bucket.energy_kwh,
                power_factor=bucket.power_factor,
            )
            for bucket in buckets
        ],
    )
