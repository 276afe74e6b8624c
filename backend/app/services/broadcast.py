from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import Protocol

from app.db.models import Reading
from app.schemas.readings import ReadingResponse


class SubscriberDeliveryError(RuntimeError):
    """Raised by a sink that can no longer accept messages."""


class ReadingSink(Protocol):
    def write(self, message: str) -> None: ...


def serialize_reading(reading: Reading | ReadingResponse) -> str:
    if isinstance(reading, ReadingResponse):
        return reading.model_dump_json()
    return ReadingResponse.model_validate(reading).model_dump_json()


class ReadingBroadcaster:
    """Registry of live subscribers; every persisted reading is pushed to all of them.

    Publishing copies the subscriber set under the lock and writes outside it, so
    a sink may subscribe or drop out while a broadcast is in flight. A sink whose
    write raises is removed on the spot and never sees later events.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._subscribers: set[ReadingSink] = set()
        self._delivered = 0
        self._dropped = 0
        self._logger = logging.getLogger("app.broadcast")

    def subscribe(self, sink: ReadingSink) -> ReadingSink:
        with self._lock:
            self._subscribers.add(sink)
            count = len(self._subscribers)
        self._logger.info("subscriber registered subscribers=%s", count)
        return sink

    def unsubscribe(self, sink: ReadingSink) -> None:
        with self._lock:
            if sink not in self._subscribers:
                return
            self._subscribers.discard(sink)
            count = len(self._subscribers)
        self._logger.info("subscriber removed subscribers=%s", count)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def broadcast(self, reading: Reading | ReadingResponse) -> int:
        message = serialize_reading(reading)
        with self._lock:
            targets = list(self._subscribers)

        failed: list[ReadingSink] = []
        for sink in targets:
            try:
                sink.write(message)
            except Exception as exc:
                self._logger.warning(
                    "dropping subscriber after failed write device_id=%s error=%s",
                    reading.device_id,
                    exc,
                )
                failed.append(sink)

        with self._lock:
            for sink in failed:
                self._subscribers.discard(sink)
            self._delivered += len(targets) - len(failed)
            self._dropped += len(failed)
        return len(targets) - len(failed)

    def get_status_snapshot(self) -> dict[str, int]:
        with self._lock:
            return {
                "subscribers": len(self._subscribers),
                "messages_delivered": self._delivered,
                "subscribers_dropped": self._dropped,
            }


class StreamSubscriber:
    """Sink backed by a bounded asyncio queue owned by one event loop.

    ``write`` may be called from any thread. A full queue or a closed loop fails
    the write so the broadcaster drops this viewer instead of waiting on it.
    """

    def __init__(self, *, loop: asyncio.AbstractEventLoop, max_pending: int) -> None:
        self._loop = loop
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max_pending)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, message: str) -> None:
        if self._closed:
            raise SubscriberDeliveryError("subscriber is closed")
        if self._queue.full():
            self._closed = True
            raise SubscriberDeliveryError("subscriber backlog is full")
        try:
            self._loop.call_soon_threadsafe(self._enqueue, message)
        except RuntimeError as exc:
            self._closed = True
            raise SubscriberDeliveryError("subscriber event loop is closed") from exc

    async def next_message(self, timeout: float) -> str | None:
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        self._closed = True

    def _enqueue(self, message: str) -> None:
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self._closed = True
