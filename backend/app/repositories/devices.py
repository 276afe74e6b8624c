import secrets
import time
import uuid

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.db.models import Device


def get_device(db: Session, device_id: str) -> Device | None:
    return db.get(Device, device_id)


def get_device_by_api_key(db: Session, api_key: str) -> Device | None:
    return db.scalars(select(Device).where(Device.api_key == api_key)).first()


def list_devices(db: Session) -> list[Device]:
    return list(db.scalars(select(Device).order_by(Device.created_at.desc(), Device.id.asc())))


def create_device(
    db: Session,
    *,
    name: str,
    timezone: str = "UTC",
    location: str | None = None,
    device_id: str | None = None,
    api_key: str | None = None,
) -> Device:
    now = int(time.time())
    device = Device(
        id=device_id or f"dev-{uuid.uuid4()}",
        name=name,
        api_key=api_key or secrets.token_urlsafe(24),
        timezone=timezone,
        location=location,
        created_at=now,
        updated_at=now,
    )
    db.add(device)
    db.commit()
    db.refresh(device)
    return device


def ensure_default_device(
    db: Session,
    *,
    device_id: str,
    api_key: str,
    timezone: str,
    location: str | None,
) -> Device:
    existing = get_device(db, device_id)
    if existing is None:
        return create_device(
            db,
            name="Primary Smart Meter",
            timezone=timezone,
            location=location,
            device_id=device_id,
            api_key=api_key,
        )

    if existing.api_key != api_key:
        existing.api_key = api_key
        existing.updated_at = int(time.time())
        db.commit()
        db.refresh(existing)
    return existing


def touch_device_last_seen(db: Session, *, device_id: str, seen_at: int) -> None:
    """Stage a last_seen update; the caller owns the commit."""
    db.execute(
        update(Device)
        .where(Device.id == device_id)
        .values(last_seen=seen_at, updated_at=int(time.time()))
    )
