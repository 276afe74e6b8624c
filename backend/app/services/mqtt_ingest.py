from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Any

import paho.mqtt.client as mqtt
from sqlalchemy.orm import sessionmaker

from app.core.config import Settings
from app.repositories.devices import get_device
from app.services.reading_ingest import ReadingIngestService, ReadingValidationError


class MqttIngestService:
    """Listens on ``<prefix>/<device_id>/readings`` and feeds the ingest service."""

    def __init__(
        self,
        *,
        settings: Settings,
        session_factory: sessionmaker,
        ingest_service: ReadingIngestService,
    ):
        self._settings = settings
        self._session_factory = session_factory
        self._ingest_service = ingest_service
        self._logger = logging.getLogger("app.mqtt_ingest")
        self._lock = Lock()
        self._topic = f"{settings.mqtt_topic_prefix.rstrip('/')}/+/readings"
        self._connected = False
        self._started = False
        self._messages_received = 0
        self._messages_rejected = 0
        self._last_message_ts: datetime | None = None

        self._client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=settings.mqtt_client_id,
            clean_session=True,
        )
        self._client.on_connect = self._on_connect
        self._client.on_disconnect = self._on_disconnect
        self._client.on_message = self._on_message
        self._client.reconnect_delay_set(min_delay=1, max_delay=30)

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            self._started = True
        self._logger.info(
            "starting mqtt ingest broker=%s:%s topic=%s",
            self._settings.mqtt_broker_host,
            self._settings.mqtt_broker_port,
            self._topic,
        )
        self._client.connect_async(
            host=self._settings.mqtt_broker_host,
            port=self._settings.mqtt_broker_port,
            keepalive=60,
        )
        self._client.loop_start()

    def stop(self) -> None:
        with self._lock:
            if not self._started:
                return
            self._started = False
        self._client.loop_stop()
        try:
            self._client.disconnect()
        except Exception:
            self._logger.exception("mqtt ingest disconnect failed")

    def get_status_snapshot(self) -> dict[str, object]:
        with self._lock:
            return {
                "enabled": True,
                "connected": self._connected,
                "topic": self._topic,
                "messages_received": self._messages_received,
                "messages_rejected": self._messages_rejected,
                "last_message_ts": self._last_message_ts.isoformat() if self._last_message_ts else None,
            }

    def handle_message(self, topic: str, payload: bytes) -> bool:
        with self._lock:
            self._messages_received += 1
            self._last_message_ts = datetime.now(timezone.utc)

        device_id = device_id_from_topic(topic, prefix=self._settings.mqtt_topic_prefix)
        if device_id is None:
            return self._reject("mqtt topic not recognised topic=%s", topic)

        with self._session_factory() as db:
            known = get_device(db, device_id) is not None
        if not known:
            return self._reject("mqtt reading for unknown device device_id=%s", device_id)

        try:
            decoded: Any = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return self._reject("mqtt payload is not valid JSON device_id=%s", device_id)

        try:
            self._ingest_service.ingest(device_id=device_id, payload=decoded)
        except ReadingValidationError as exc:
            return self._reject("mqtt reading rejected device_id=%s error=%s", device_id, exc)
        return True

    def _reject(self, message: str, *args: object) -> bool:
        self._logger.warning(message, *args)
        with self._lock:
            self._messages_rejected += 1
        return False

    def _on_connect(self, client: mqtt.Client, _userdata: object, _flags: Any, reason_code: Any, _properties: Any) -> None:
        if reason_code.is_failure:
            self._logger.error("mqtt connect failed reason=%s", reason_code)
            return
        with self._lock:
            self._connected = True
        result, _mid = client.subscribe(self._topic, qos=self._settings.mqtt_qos)
        if result != mqtt.MQTT_ERR_SUCCESS:
            self._logger.error("mqtt subscribe failed topic=%s rc=%s", self._topic, result)
        else:
            self._logger.info("mqtt subscribed topic=%s", self._topic)

    def _on_disconnect(self, _client: mqtt.Client, _userdata: object, _flags: Any, reason_code: Any, _properties: Any) -> None:
        with self._lock:
            self._connected = False
        self._logger.warning("mqtt disconnected reason=%s", reason_code)

    def _on_message(self, _client: mqtt.Client, _userdata: object, message: mqtt.MQTTMessage) -> None:
        try:
            self.handle_message(message.topic, message.payload)
        except Exception:
            self._logger.exception("mqtt ingest failed topic=%s", message.topic)


def device_id_from_topic(topic: str, *, prefix: str) -> str | None:
    parts = topic.strip("/").split("/")
    prefix_parts = prefix.strip("/").split("/")
    if len(parts) != len(prefix_parts) + 2:
        return None
    if parts[: len(prefix_parts)] != prefix_parts or parts[-1] != "readings":
        return None
    device_id = parts[len(prefix_parts)].strip()
    return device_id or None
