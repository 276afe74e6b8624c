from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.api.scope import PERIOD_PATTERN, load_query_scope
from app.core.config import Settings
from app.db.session import get_db
from app.dependencies import get_request_user_id, get_settings_from_app
from app.repositories.exports import create_export_record
from app.schemas.exports import ExportFormat, ExportPreviewResponse, Sampling
from app.services.export_dataset import (
    apply_sampling,
    build_dataset,
    export_filename,
    parse_metric_list,
    select_metrics,
)
from app.services.export_encoding import (
    CSV_MEDIA_TYPE,
    XLSX_MEDIA_TYPE,
    encode_csv,
    encode_xlsx,
)


router = APIRouter(prefix="/api/export", tags=["export"])
logger = logging.getLogger("app.export")


def _metrics_or_400(raw: str | None) -> list[str]:
    try:
        return select_metrics(parse_metric_list(raw))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/preview", response_model=ExportPreviewResponse, response_model_by_alias=True)
def preview_export(
    format: ExportFormat = Query(default="csv"),
    device_id: str | None = Query(default=None, max_length=64),
    metrics: str | None = Query(default=None),
    sampling: Sampling = Query(default="5min"),
    period: str = Query(default="day", pattern=PERIOD_PATTERN),
    from_value: str | None = Query(default=None, alias="from"),
    to_value: str | None = Query(default=None, alias="to"),
    timezone_name: str | None = Query(default=None, alias="timezone", max_length=64),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_app),
) -> ExportPreviewResponse:
    selected = _metrics_or_400(metrics)
    scope = load_query_scope(
        db,
        settings=settings,
        device_id=device_id,
        period=period,
        from_value=from_value,
        to_value=to_value,
        timezone_name=timezone_name,
    )
    sampled = apply_sampling(scope.readings, sampling)[: settings.export_preview_limit]
    return ExportPreviewResponse(
        device_id=scope.device_id,
        from_ts=scope.time_range.from_ts,
        to_ts=scope.time_range.to_ts,
        metrics=selected,
        sampling=sampling,
        filename=export_filename(scope.device_id, format),
        points=build_dataset(sampled, selected),
    )


@router.get("/readings")
def export_readings(
    format: ExportFormat = Query(default="csv"),
    device_id: str | None = Query(default=None, max_length=64),
    metrics: str | None = Query(default=None),
    sampling: Sampling = Query(default="all"),
    include_metadata: bool = Query(default=False),
    period: str = Query(default="week", pattern=PERIOD_PATTERN),
    from_value: str | None = Query(default=None, alias="from"),
    to_value: str | None = Query(default=None, alias="to"),
    timezone_name: str | None = Query(default=None, alias="timezone", max_length=64),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_from_app),
    user_id: str = Depends(get_request_user_id),
) -> Response:
    selected = _metrics_or_400(metrics)
    scope = load_query_scope(
        db,
        settings=settings,
        device_id=device_id,
        period=period,
        from_value=from_value,
        to_value=to_value,
        timezone_name=timezone_name,
    )
    dataset = build_dataset(apply_sampling(scope.readings, sampling), selected)
    filename = export_filename(scope.device_id, format)

    if format == "excel":
        content = encode_xlsx(
            dataset,
            selected,
            include_metadata=include_metadata,
            device_id=scope.device_id,
            range_from=scope.time_range.from_ts,
            range_to=scope.time_range.to_ts,
            sampling=sampling,
        )
        media_type = XLSX_MEDIA_TYPE
    else:
        content = encode_csv(dataset, selected)
        media_type = CSV_MEDIA_TYPE

    create_export_record(
        db,
        user_id=user_id,
        export_format=format,
        metrics=selected,
        range_from=scope.time_range.from_ts,
        range_to=scope.time_range.to_ts,
    )
    logger.info(
        "export completed device_id=%s format=%s rows=%s user_id=%s",
        scope.device_id,
        format,
        len(dataset),
        user_id,
    )
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
