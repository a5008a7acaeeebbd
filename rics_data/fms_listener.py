"""Listener that forwards fleet-management commands onto the internal bus."""

from __future__ import annotations

import logging
from collections.abc import Callable

from .models import MqttSimple
from .mqtt_transport import Listener

logger = logging.getLogger(__name__)

OUTPUT_TOPIC = "/rics/fms_to_robot"
FMS_TOPIC_MARKERS = ("/login-ack", "/lock", "/notify-ack")

Publisher = Callable[[str, MqttSimple], object]


class FmsMessageListener(Listener):
    """Forwards login, lock and notify acknowledgements for one robot."""

    def __init__(self, sn: str, publisher: Publisher | None = None) -> None:
        self.sn = sn
        self._publisher = publisher
        logger.info("FmsMessageListener initialized with SN: %s", sn)

    def set_publisher(self, publisher: Publisher | None) -> None:
        """Set the function called with the bus topic and each forwarded message."""
        self._publisher = publisher
        if publisher is None:
            logger.info("publisher not set, cannot publish")
        else:
            logger.info("FmsMessageListener publisher set")

    def message_check(self, topic: str) -> bool:
        """Return whether ``topic`` is a fleet-management topic."""
        return any(marker in topic for marker in FMS_TOPIC_MARKERS)

    def on_message(self, topic: str, payload: str) -> bool:
        """Forward the message to the bus; return whether it was published."""
        logger.info("Received FMS message: topic=%s payload=%s", topic, payload)
        if self._publisher is None:
            logger.info("publisher not set, skipping publish")
            return False
        self._publisher(OUTPUT_TOPIC, MqttSimple(topic=topic, message=payload))
        logger.info("Published to topic: %s", OUTPUT_TOPIC)
        return True

    def subscribe_topics(self) -> list[str]:
        """Return the broker topics carrying commands for this robot."""
        return [
            f"command/{self.sn}/login-ack",
            f"connect/{self.sn}/lock",
            f"command/{self.sn}/notify-ack",
        ]