from typing import TYPE_CHECKING

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.db.models import Device
from app.db.session import get_db
from app.repositories.devices import get_device_by_api_key

if TYPE_CHECKING:
    from app.services.broadcast import ReadingBroadcaster
    from app.services.reading_ingest import ReadingIngestService


def get_settings_from_app(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        raise HTTPException(status_code=503, detail="Application settings are not initialized")
    return settings


def get_ingest_service(request: Request) -> "ReadingIngestService":
    service = getattr(request.app.state, "ingest_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Reading ingest service is not initialized")
    return service


def get_broadcaster(request: Request) -> "ReadingBroadcaster":
    broadcaster = getattr(request.app.state, "broadcaster", None)
    if broadcaster is None:
        raise HTTPException(status_code=503, detail="Reading broadcaster is not initialized")
    return broadcaster


def get_authenticated_device(
    x_device_key: str | None = Header(default=None),
    db: Session = Depends(get_db),
) -> Device:
    if not x_device_key:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing device key")
    device = get_device_by_api_key(db, x_device_key.strip())
    if device is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid device key")
    return device


def get_request_user_id(
    x_user_id: str | None = Header(default=None),
    settings: Settings = Depends(get_settings_from_app),
) -> str:
    # Identity is asserted by the upstream auth proxy.
    if x_user_id and x_user_id.strip():
        return x_user_id.strip()
    return settings.default_export_user_id
