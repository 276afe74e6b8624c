import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, Request
from sqlalchemy.orm import Session

from app.api.analytics import router as analytics_router
from app.api.devices import router as devices_router
from app.api.exports import router as exports_router
from app.api.readings import router as readings_router
from app.api.stream import router as stream_router
from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.db.base import Base
from app.db.session import SessionLocal, check_db_connection, engine, get_db
from app.repositories.devices import ensure_default_device
from app.services.broadcast import ReadingBroadcaster
from app.services.mqtt_ingest import MqttIngestService
from app.services.reading_ingest import ReadingIngestService

logger = logging.getLogger("app.main")


def _bootstrap_database(settings: Settings) -> None:
    if settings.database_auto_create:
        Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        device = ensure_default_device(
            db,
            device_id=settings.default_device_id,
            api_key=settings.default_device_api_key,
            timezone=settings.default_device_timezone,
            location=settings.default_device_location,
        )
    logger.info("default device ready device_id=%s timezone=%s", device.id, device.timezone)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    settings = get_settings()
    broadcaster = ReadingBroadcaster()
    ingest_service = ReadingIngestService(session_factory=SessionLocal, broadcaster=broadcaster)
    mqtt_service: MqttIngestService | None = None
    if settings.mqtt_enabled:
        mqtt_service = MqttIngestService(
            settings=settings,
            session_factory=SessionLocal,
            ingest_service=ingest_service,
        )

    app.state.settings = settings
    app.state.broadcaster = broadcaster
    app.state.ingest_service = ingest_service
    app.state.mqtt_service = mqtt_service

    try:
        _bootstrap_database(settings)
    except Exception:
        logger.exception("database bootstrap failed")

    if mqtt_service is not None:
        mqtt_service.start()
    try:
        yield
    finally:
        if mqtt_service is not None:
            mqtt_service.stop()


app = FastAPI(title="Smart Meter Backend", lifespan=lifespan)
app.include_router(readings_router)
app.include_router(analytics_router)
app.include_router(exports_router)
app.include_router(stream_router)
app.include_router(devices_router)


@app.get("/health")
def health():
    return {"status": "ok", "service": "backend"}


@app.get("/status")
def status(request: Request, db: Session = Depends(get_db)):
    db_ok, db_error = check_db_connection(db)
    broadcaster: ReadingBroadcaster | None = getattr(request.app.state, "broadcaster", None)
    mqtt_service: MqttIngestService | None = getattr(request.app.state, "mqtt_service", None)
    settings: Settings | None = getattr(request.app.state, "settings", None)

    db_status: dict[str, object] = {"ok": db_ok}
    if db_error:
        db_status["error"] = db_error

    if broadcaster is None:
        broadcast_status: dict[str, object] = {
            "subscribers": 0,
            "error": "Reading broadcaster not initialized",
        }
    else:
        broadcast_status = dict(broadcaster.get_status_snapshot())

    if mqtt_service is None:
        mqtt_status: dict[str, object] = {"enabled": False, "connected": False}
    else:
        mqtt_status = mqtt_service.get_status_snapshot()

    return {
        "status": "working",
        "service": "backend",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "db": db_status,
        "broadcast": broadcast_status,
        "mqtt": mqtt_status,
        "config": {
            "default_device_id": settings.default_device_id if settings else None,
            "base_tariff_per_kwh": settings.base_tariff_per_kwh if settings else None,
            "currency_symbol": settings.currency_symbol if settings else None,
            "stream_token_required": bool(settings.stream_token) if settings else None,
            "stream_keepalive_seconds": settings.stream_keepalive_seconds if settings else None,
            "export_preview_limit": settings.export_preview_limit if settings else None,
        },
    }
