from __future__ import annotations

from dataclasses import dataclass

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.db.models import Reading
from app.repositories.devices import get_device
from app.repositories.readings import list_readings_in_range
from app.services.time_range import TimeRange, resolve_range

PERIOD_PATTERN = "^(day|week|month|year)$"


@dataclass(frozen=True)
class QueryScope:
    device_id: str
    timezone_name: str
    time_range: TimeRange
    readings: list[Reading]


def load_query_scope(
    db: Session,
    *,
    settings: Settings,
    device_id: str | None,
    period: str | None,
    from_value: str | None,
    to_value: str | None,
    timezone_name: str | None,
) -> QueryScope:
    """Resolve device, timezone and range, then load the readings in that range.

    An unknown device is not an error: it simply has no readings.
    """
    resolved_device_id = device_id or settings.default_device_id
    device = get_device(db, resolved_device_id)
    zone = timezone_name or (device.timezone if device is not None else None) or "UTC"

    try:
        time_range = resolve_range(
            period=period,
            from_value=from_value,
            to_value=to_value,
            timezone_name=zone,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))

    readings: list[Reading] = []
    if device is not None:
        readings = list_readings_in_range(
            db,
            device_id=resolved_device_id,
            from_ts=time_range.from_ts,
            to_ts=time_range.to_ts,
        )
    return QueryScope(
        device_id=resolved_device_id,
        timezone_name=zone,
        time_range=time_range,
        readings=readings,
    )
