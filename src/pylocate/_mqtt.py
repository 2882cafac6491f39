"""MQTT-backed cross-node transport.

Each protocol topic is published as ``<topic_prefix>/<topic>`` with a JSON
body at QoS 1. paho-mqtt runs its network loop on its own thread; received
messages are marshalled onto the node's asyncio loop before any handler
runs, so handlers never race with the locate state machine.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, cast

import paho.mqtt.client as mqtt

from pylocate.config import MqttSettings
from pylocate.exceptions import LocatorTransportError
from pylocate.messaging import MessageHandler

_QOS = 1


def decode_mqtt_payload(payload: bytes) -> Any:
    """Decode an MQTT message body into a JSON value."""
    return json.loads(payload.decode("utf-8"))


class MqttTransport:
    """Threaded paho-mqtt runtime implementing the message transport protocol."""

    def __init__(
        self,
        settings: MqttSettings,
        *,
        loop: asyncio.AbstractEventLoop | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._loop = loop
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._running = False
        self._handlers: dict[str, MessageHandler] = {}

    @property
    def is_running(self) -> bool:
        """Whether the MQTT runtime is actively running."""
        return self._running

    def full_topic(self, topic: str) -> str:
        return f"{self._settings.topic_prefix}/{topic}"

    def _local_topic(self, full_topic: str) -> str:
        prefix = f"{self._settings.topic_prefix}/"
        return full_topic[len(prefix) :] if full_topic.startswith(prefix) else full_topic

    def on_message(self, topic: str, handler: MessageHandler) -> None:
        topic = str(topic)
        self._handlers[topic] = handler
        client = self._client
        if client is not None and self._running:
            self._logger.debug("MQTT subscribing topic=%s", self.full_topic(topic))
            client.subscribe(self.full_topic(topic), qos=_QOS)

    def send(self, topic: str, payload: Any) -> None:
        client = self._client
        if client is None:
            raise LocatorTransportError("MQTT transport not started")
        try:
            body = json.dumps(payload, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise LocatorTransportError(f"payload for {topic} is not JSON-serializable") from exc
        info = client.publish(self.full_topic(str(topic)), body, qos=_QOS)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            # QoS 1 publishes are queued by paho until the connection is back.
            self._logger.debug("MQTT publish topic=%s queued rc=%s", topic, info.rc)

    def start(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Connect to the broker and subscribe to every registered topic."""
        self.stop()
        if loop is not None:
            self._loop = loop
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        settings = self._settings
        self._logger.debug(
            "MQTT transport start requested host=%s port=%s prefix=%s",
            settings.host,
            settings.port,
            settings.topic_prefix,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(self._logger)
        if settings.username:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()

        def on_connect(
            c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                self._logger.warning("MQTT connect failed: %s", reason_code)
                return
            self._logger.debug("MQTT connected reason=%s", reason_code)
            for topic in list(self._handlers):
                c.subscribe(self.full_topic(topic), qos=_QOS)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            try:
                payload = decode_mqtt_payload(msg.payload)
            except (UnicodeDecodeError, json.JSONDecodeError):
                self._logger.debug("MQTT payload parse failure topic=%s", msg.topic, exc_info=True)
                return
            loop = self._loop
            if loop is None or loop.is_closed():
                return
            loop.call_soon_threadsafe(self._dispatch, self._local_topic(msg.topic), payload)

        def on_disconnect(
            _client: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if self._running:
                self._logger.debug("MQTT disconnected: %s", reason_code)

        client.on_connect = on_connect
        client.on_message = on_message
        client.on_disconnect = on_disconnect

        client.connect(settings.host, settings.port, keepalive=settings.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Stop and disconnect the MQTT client if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _dispatch(self, topic: str, payload: Any) -> None:
        handler = self._handlers.get(topic)
        if handler is None:
            self._logger.debug("MQTT message on unhandled topic=%s", topic)
            return
        try:
            handler(payload)
        except Exception:
            self._logger.warning("MQTT handler for topic=%s failed", topic, exc_info=True)
