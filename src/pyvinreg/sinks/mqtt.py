"""MQTT notification sink."""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyvinreg._redact import redact_for_log
from pyvinreg.exceptions import VinRegSinkError
from pyvinreg.state.events import RegistryEvent

_logger = logging.getLogger(__name__)


class MqttNotificationSink:
    """Publish registry events as JSON to ``<topic>/<event_type>``.

    ``publish`` only queues the message on paho's network thread, so it
    never blocks the ledger.
    """

    def __init__(
        self,
        client: mqtt.Client,
        *,
        topic: str = "vinreg/events",
        qos: int = 0,
        owns_client: bool = False,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._topic = topic.rstrip("/")
        self._qos = qos
        self._owns_client = owns_client
        self._logger = logger or _logger

    @classmethod
    def connect(
        cls,
        host: str,
        port: int = 1883,
        *,
        topic: str = "vinreg/events",
        qos: int = 0,
        username: str | None = None,
        password: str | None = None,
        client_id: str | None = None,
        keepalive: int = 60,
        tls: bool = False,
    ) -> MqttNotificationSink:
        """Create a client, start its network loop and connect in the background."""
        resolved_client_id = client_id or f"pyvinreg-{secrets.token_hex(4)}"
        _logger.debug(
            "MQTT sink connect requested %s",
            redact_for_log(
                {
                    "host": host,
                    "port": port,
                    "topic": topic,
                    "client_id": resolved_client_id,
                    "username": username,
                    "password": password,
                }
            ),
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=resolved_client_id,
            protocol=mqtt.MQTTv5,
        )
        client.enable_logger(_logger)
        if username:
            client.username_pw_set(username, password)
        if tls:
            client.tls_set()

        def on_connect(
            _client: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.value != 0:
                _logger.warning("MQTT sink connect failed: %s", reason_code)
                return
            _logger.debug("MQTT sink connected reason=%s", reason_code)

        client.on_connect = on_connect
        client.connect_async(host, port, keepalive=keepalive)
        client.loop_start()
        return cls(client, topic=topic, qos=qos, owns_client=True)

    @property
    def topic(self) -> str:
        return self._topic

    def topic_for(self, event: RegistryEvent) -> str:
        return f"{self._topic}/{event.event_type.value}"

    def publish(self, event: RegistryEvent) -> None:
        topic = self.topic_for(event)
        payload = json.dumps(event.to_payload(), separators=(",", ":"))
        info = self._client.publish(topic, payload, qos=self._qos)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise VinRegSinkError(
                f"MQTT publish to {topic} failed: {mqtt.error_string(info.rc)}",
                vin=event.vin,
                sink="mqtt",
            )
        self._logger.debug("MQTT event queued topic=%s sequence=%s", topic, event.sequence)

    def close(self) -> None:
        """Disconnect and stop the network loop of a client created by :meth:`connect`."""
        if not self._owns_client:
            return
        client = self._client
        self._owns_client = False
        try:
            client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT sink network loop stopped")
