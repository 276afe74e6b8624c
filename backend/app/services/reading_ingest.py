from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.db.models import Reading
from app.repositories.readings import create_reading
from app.schemas.readings import ReadingPayload
from app.services.broadcast import ReadingBroadcaster
from app.services.derivation import derive_metrics


class ReadingValidationError(ValueError):
    """The raw payload could not be turned into a reading; nothing was stored."""


class ReadingIngestService:
    def __init__(
        self,
        *,
        session_factory: sessionmaker,
        broadcaster: ReadingBroadcaster | None = None,
    ):
        self._session_factory = session_factory
        self._broadcaster = broadcaster
        self._logger = logging.getLogger("app.reading_ingest")

    def ingest(
        self,
        *,
        device_id: str,
        payload: ReadingPayload | Mapping[str, Any],
    ) -> Reading:
        validated = _validate_payload(payload)
        now = int(time.time())
        captured_at = math.floor(validated.timestamp) if validated.timestamp is not None else now
        derived = derive_metrics(validated)

        with self._session_factory() as db:
            try:
                reading = create_reading(
                    db,
                    device_id=device_id,
                    captured_at=captured_at,
                    values=derived.as_columns(),
                    metadata_json=validated.metadata,
                    created_at=now,
                )
            except SQLAlchemyError:
                db.rollback()
                self._logger.exception("reading persist failed device_id=%s", device_id)
                raise

        self._logger.debug(
            "reading stored device_id=%s id=%s captured_at=%s",
            device_id,
            reading.id,
            reading.captured_at,
        )
        if self._broadcaster is not None:
            self._broadcaster.broadcast(reading)
        return reading


def _validate_payload(payload: ReadingPayload | Mapping[str, Any]) -> ReadingPayload:
    if isinstance(payload, ReadingPayload):
        return payload
    if not isinstance(payload, Mapping):
        raise ReadingValidationError("reading payload must be a JSON object")
    try:
        return ReadingPayload.model_validate(dict(payload))
    except ValidationError as exc:
        raise ReadingValidationError(_describe_errors(exc)) from exc


def _describe_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "payload"
        parts.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "invalid reading payload: " + "; ".join(parts)
