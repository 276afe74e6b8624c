from __future__ import annotations

import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.db.models import Device
from app.db.session import get_db
from app.repositories.devices import create_device, get_device, list_devices
from app.schemas.devices import DeviceCreatedResponse, DeviceCreateRequest, DeviceResponse


router = APIRouter(prefix="/api/devices", tags=["devices"])
logger = logging.getLogger("app.devices_api")


@router.get("", response_model=list[DeviceResponse])
def get_all_devices(db: Session = Depends(get_db)) -> list[Device]:
    return list_devices(db)


@router.post("", response_model=DeviceCreatedResponse, status_code=status.HTTP_201_CREATED)
def create_device_endpoint(
    payload: DeviceCreateRequest,
    db: Session = Depends(get_db),
) -> Device:
    try:
        ZoneInfo(payload.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown timezone '{payload.timezone}'",
        )

    try:
        device = create_device(
            db,
            name=payload.name,
            timezone=payload.timezone,
            location=payload.location,
        )
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Device already exists")

    logger.info("device registered device_id=%s timezone=%s", device.id, device.timezone)
    return device


@router.get("/{device_id}", response_model=DeviceResponse)
def get_device_endpoint(device_id: str, db: Session = Depends(get_db)) -> Device:
    device = get_device(db, device_id)
    if device is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Device not found")
    return device
