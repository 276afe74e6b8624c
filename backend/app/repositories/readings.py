from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import Reading
from app.repositories.devices import touch_device_last_seen


def create_reading(
    db: Session,
    *,
    device_id: str,
    captured_at: int,
    values: dict[str, float | None],
    metadata_json: dict[str, Any] | None,
    created_at: int,
) -> Reading:
    """Insert one reading and advance the device's last_seen in a single commit."""
    reading = Reading(
        device_id=device_id,
        captured_at=captured_at,
        metadata_json=metadata_json,
        created_at=created_at,
        **values,
    )
    db.add(reading)
    touch_device_last_seen(db, device_id=device_id, seen_at=captured_at)
    db.commit()
    db.refresh(reading)
    return reading


def get_latest_reading(db: Session, *, device_id: str) -> Reading | None:
    return db.scalars(
        select(Reading)
        .where(Reading.device_id == device_id)
        .order_by(Reading.captured_at.desc(), Reading.id.desc())
        .limit(1)
    ).first()


def list_readings_in_range(
    db: Session,
    *,
    device_id: str,
    from_ts: int,
    to_ts: int,
) -> list[Reading]:
    return list(
        db.scalars(
            select(Reading)
            .where(
                Reading.device_id == device_id,
                Reading.captured_at >= from_ts,
                Reading.captured_at <= to_ts,
            )
            .order_by(Reading.captured_at.asc(), Reading.id.asc())
        )
    )
