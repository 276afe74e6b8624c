from __future__ import annotations

import asyncio
import logging
import secrets
from collections.abc import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from app.core.config import Settings
from app.dependencies import get_broadcaster, get_settings_from_app
from app.services.broadcast import ReadingBroadcaster, StreamSubscriber


router = APIRouter(prefix="/api", tags=["stream"])
logger = logging.getLogger("app.stream")

CONNECTED_FRAME = ": connected\n\n"
KEEPALIVE_FRAME = ": keepalive\n\n"


def format_event(message: str) -> str:
    return f"data: {message}\n\n"


async def _event_frames(
    request: Request,
    broadcaster: ReadingBroadcaster,
    subscriber: StreamSubscriber,
    keepalive_seconds: float,
) -> AsyncIterator[str]:
    try:
        yield CONNECTED_FRAME
        while not subscriber.closed:
            if await request.is_disconnected():
                break
            message = await subscriber.next_message(timeout=keepalive_seconds)
            if message is None:
                yield KEEPALIVE_FRAME
            else:
                yield format_event(message)
    finally:
        subscriber.close()
        broadcaster.unsubscribe(subscriber)
        logger.info("stream viewer detached subscribers=%s", broadcaster.subscriber_count)


@router.get("/stream")
async def stream_readings(
    request: Request,
    token: str | None = Query(default=None, max_length=256),
    settings: Settings = Depends(get_settings_from_app),
    broadcaster: ReadingBroadcaster = Depends(get_broadcaster),
) -> StreamingResponse:
    if settings.stream_token:
        if token is None or not secrets.compare_digest(token, settings.stream_token):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid stream token")

    subscriber = StreamSubscriber(
        loop=asyncio.get_running_loop(),
        max_pending=settings.stream_max_pending_messages,
    )
    broadcaster.subscribe(subscriber)
    return StreamingResponse(
        _event_frames(request, broadcaster, subscriber, settings.stream_keepalive_seconds),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
