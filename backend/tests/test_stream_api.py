from __future__ import annotations

import asyncio
from unittest import TestCase

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.stream import CONNECTED_FRAME, KEEPALIVE_FRAME, _event_frames, router as stream_router
from app.core.config import Settings
from app.services.broadcast import ReadingBroadcaster, StreamSubscriber


class _FakeRequest:
    def __init__(self, *, disconnect_after: int) -> None:
        self._checks = 0
        self._disconnect_after = disconnect_after

    async def is_disconnected(self) -> bool:
        self._checks += 1
        return self._checks > self._disconnect_after


class StreamFramesTests(TestCase):
    def _collect(self, *, pending: list[str], disconnect_after: int) -> tuple[list[str], int]:
        broadcaster = ReadingBroadcaster()

        async def scenario() -> list[str]:
            subscriber = StreamSubscriber(loop=asyncio.get_running_loop(), max_pending=8)
            broadcaster.subscribe(subscriber)
            for message in pending:
                subscriber.write(message)
            await asyncio.sleep(0)
            frames = _event_frames(
                _FakeRequest(disconnect_after=disconnect_after),
                broadcaster,
                subscriber,
                0.01,
            )
            return [frame async for frame in frames]

        frames = asyncio.run(scenario())
        return frames, broadcaster.subscriber_count

    def test_connected_then_one_event_per_message(self) -> None:
        frames, remaining = self._collect(pending=['{"id": 1}', '{"id": 2}'], disconnect_after=2)

        self.assertEqual(frames, [CONNECTED_FRAME, 'data: {"id": 1}\n\n', 'data: {"id": 2}\n\n'])
        self.assertEqual(remaining, 0)

    def test_idle_stream_sends_keepalive(self) -> None:
        frames, remaining = self._collect(pending=[], disconnect_after=1)

        self.assertEqual(frames, [CONNECTED_FRAME, KEEPALIVE_FRAME])
        self.assertEqual(remaining, 0)


class StreamAuthTests(TestCase):
    def test_token_is_required_when_configured(self) -> None:
        app = FastAPI()
        app.include_router(stream_router)
        app.state.settings = Settings(stream_token="s3cret")
        app.state.broadcaster = ReadingBroadcaster()
        client = TestClient(app)

        self.assertEqual(client.get("/api/stream").status_code, 401)
        self.assertEqual(client.get("/api/stream", params={"token": "wrong"}).status_code, 401)
        self.assertEqual(app.state.broadcaster.subscriber_count, 0)
