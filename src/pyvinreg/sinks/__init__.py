"""External notification sinks."""

from __future__ import annotations

import asyncio
import dataclasses
import logging

import aiohttp

from pyvinreg._redact import redact_for_log
from pyvinreg.config import LedgerConfig
from pyvinreg.notifications import NotificationSink
from pyvinreg.sinks.mqtt import MqttNotificationSink
from pyvinreg.sinks.webhook import WebhookNotificationSink

_logger = logging.getLogger(__name__)


def build_sinks(
    config: LedgerConfig,
    *,
    loop: asyncio.AbstractEventLoop | None = None,
    session: aiohttp.ClientSession | None = None,
) -> list[NotificationSink]:
    """Create the sinks enabled in *config*.

    The webhook sink needs an event loop to run deliveries on; without
    *loop* a configured ``webhook_url`` is rejected.
    """
    _logger.debug("Building sinks from %s", redact_for_log(dataclasses.asdict(config)))
    sinks: list[NotificationSink] = []
    if config.mqtt_host:
        sinks.append(
            MqttNotificationSink.connect(
                config.mqtt_host,
                config.mqtt_port,
                topic=config.mqtt_topic,
                qos=config.mqtt_qos,
                username=config.mqtt_username,
                password=config.mqtt_password,
            )
        )
    if config.webhook_url:
        if loop is None:
            raise ValueError("webhook_url is set but no event loop was given for deliveries")
        sinks.append(
            WebhookNotificationSink(
                config.webhook_url,
                loop=loop,
                session=session,
                secret=config.webhook_secret,
                timeout=config.webhook_timeout,
            )
        )
    return sinks


__all__ = ["MqttNotificationSink", "WebhookNotificationSink", "build_sinks"]
