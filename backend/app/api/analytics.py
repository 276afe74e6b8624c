from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.api.scope import PERIOD_PATTERN, load_query_scope
from app.core.config import Settings
from app.db.session import get_db
from app.dependencies import get_settings_from_app
from app.schemas.analytics import (
    CostEnvelopeResponse,
    CostProjectionResponse,
    SummaryEnvelopeResponse,
    SummaryResponse,
    VoltageHistoryResponse,
    VoltagePointResponse,
)
from app.services.bucketizer import bucketize_readings
from app.services.cost import build_cost_projection
from app.services.summary import build_summary
from app.services.time_range import granularity_for_range


router = APIRouter(prefix="/api/analytics", tags=["analytics"])


@router.get("/summary", response_model=SummaryEnvelopeResponse, response_model_by_alias=True)
def get_summary(
    device_id: str | None = Query(default=None, max_length=64),
    period: str | None = Query(default=None, pattern=PERIOD_PATTERN),
    from_value: str | None = Query(default=None, alias="from"),
    to_value: str | None = Query(default=None, alias="to"),
    timezone_name: str | None = Query(default=None, alias="timezone", max_length=64),
    interval_seconds: int | None = Query(default=None, ge=1, le=31 * 86400),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_app),
) -> SummaryEnvelopeResponse:
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
    summary = build_summary(
        scope.readings,
        timezone_name=scope.timezone_name,
        interval_seconds=interval,
    )
    return SummaryEnvelopeResponse(
        device_id=scope.device_id,
        from_ts=scope.time_range.from_ts,
        to_ts=scope.time_range.to_ts,
        interval_seconds=interval,
        summary=SummaryResponse.model_validate(asdict(summary)),
    )


@router.get("/voltage-history", response_model=VoltageHistoryResponse, response_model_by_alias=True)
def get_voltage_history(
    device_id: str | None = Query(default=None, max_length=64),
    period: str | None = Query(default=None, pattern=PERIOD_PATTERN),
    from_value: str | None = Query(default=None, alias="from"),
    to_value: str | None = Query(default=None, alias="to"),
    timezone_name: str | None = Query(default=None, alias="timezone", max_length=64),
    interval_seconds: int | None = Query(default=None, ge=1, le=31 * 86400),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_app),
) -> VoltageHistoryResponse:
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
    return VoltageHistoryResponse(
        device_id=scope.device_id,
        from_ts=scope.time_range.from_ts,
        to_ts=scope.time_range.to_ts,
        interval_seconds=interval,
        points=[
            VoltagePointResponse(
                timestamp=bucket.timestamp,
                voltage=bucket.voltage,
                peak=bucket.peak_voltage,
                minimum=bucket.min_voltage,
            )
            for bucket in bucketize_readings(scope.readings, interval)
        ],
    )


@router.get("/cost", response_model=CostEnvelopeResponse, response_model_by_alias=True)
def get_cost(
    device_id: str | None = Query(default=None, max_length=64),
    period: str = Query(default="month", pattern=PERIOD_PATTERN),
    from_value: str | None = Query(default=None, alias="from"),
    to_value: str | None = Query(default=None, alias="to"),
    timezone_name: str | None = Query(default=None, alias="timezone", max_length=64),
    symbol: str | None = Query(default=None, max_length=8),
    tariff: float | None = Query(default=None, ge=0.0),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_app),
) -> CostEnvelopeResponse:
    scope = load_query_scope(
        db,
        settings=settings,
        device_id=device_id,
        period=period,
        from_value=from_value,
        to_value=to_value,
        timezone_name=timezone_name,
    )
    projection = build_cost_projection(
        scope.readings,
        base_tariff=tariff if tariff is not None else settings.base_tariff_per_kwh,
        currency_symbol=symbol or settings.currency_symbol,
    )
    return CostEnvelopeResponse(
        device_id=scope.device_id,
        from_ts=scope.time_range.from_ts,
        to_ts=scope.time_range.to_ts,
        projection=CostProjectionResponse.model_validate(asdict(projection)),
    )
