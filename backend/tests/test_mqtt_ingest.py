from __future__ import annotations

import json
from typing import Any
from unittest import TestCase

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.config import Settings
from app.db.base import Base
from app.repositories.devices import create_device
from app.services.mqtt_ingest import MqttIngestService, device_id_from_topic
from app.services.reading_ingest import ReadingValidationError


def _session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


class _FakeIngestService:
    def __init__(self, *, fail: bool = False) -> None:
        self.calls: list[tuple[str, Any]] = []
        self._fail = fail

    def ingest(self, *, device_id: str, payload: Any) -> None:
        if self._fail:
            raise ReadingValidationError("invalid reading payload: voltage: must be a number")
        self.calls.append((device_id, payload))


class DeviceIdFromTopicTests(TestCase):
    def test_middle_segment_is_the_device(self) -> None:
        self.assertEqual(device_id_from_topic("smartmeter/meter-001/readings", prefix="smartmeter"), "meter-001")
        self.assertEqual(device_id_from_topic("site/a/meter-7/readings", prefix="site/a/"), "meter-7")

    def test_other_topics_are_ignored(self) -> None:
        for topic in (
            "smartmeter/meter-001/status",
            "smartmeter/readings",
            "other/meter-001/readings",
            "smartmeter/meter-001/extra/readings",
        ):
            with self.subTest(topic=topic):
                self.assertIsNone(device_id_from_topic(topic, prefix="smartmeter"))


class MqttIngestServiceTests(TestCase):
    def setUp(self) -> None:
        self.session_factory = _session_factory()
        with self.session_factory() as db:
            create_device(db, name="Test meter", device_id="meter-001", api_key="key-1")
        self.settings = Settings(mqtt_enabled=True, mqtt_topic_prefix="smartmeter")

    def _service(self, ingest_service: _FakeIngestService) -> MqttIngestService:
        return MqttIngestService(
            settings=self.settings,
            session_factory=self.session_factory,
            ingest_service=ingest_service,
        )

    def test_valid_message_is_ingested(self) -> None:
        ingest = _FakeIngestService()
        service = self._service(ingest)

        accepted = service.handle_message(
            "smartmeter/meter-001/readings",
            json.dumps({"voltage": 230.1, "current": 1.0}).encode("utf-8"),
        )

        self.assertTrue(accepted)
        self.assertEqual(ingest.calls, [("meter-001", {"voltage": 230.1, "current": 1.0})])
        snapshot = service.get_status_snapshot()
        self.assertEqual(snapshot["messages_received"], 1)
        self.assertEqual(snapshot["messages_rejected"], 0)
        self.assertEqual(snapshot["topic"], "smartmeter/+/readings")

    def test_rejected_messages_are_counted(self) -> None:
        ingest = _FakeIngestService()
        service = self._service(ingest)

        with self.assertLogs("app.mqtt_ingest", level="WARNING"):
            self.assertFalse(service.handle_message("smartmeter/meter-001/status", b"{}"))
            self.assertFalse(service.handle_message("smartmeter/unknown/readings", b"{}"))
            self.assertFalse(service.handle_message("smartmeter/meter-001/readings", b"not json"))

        self.assertEqual(ingest.calls, [])
        self.assertEqual(service.get_status_snapshot()["messages_rejected"], 3)

    def test_invalid_reading_is_dropped(self) -> None:
        service = self._service(_FakeIngestService(fail=True))

        with self.assertLogs("app.mqtt_ingest", level="WARNING"):
            accepted = service.handle_message("smartmeter/meter-001/readings", b'{"voltage": "high"}')

        self.assertFalse(accepted)
