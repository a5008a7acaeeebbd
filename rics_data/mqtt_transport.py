"""Message transport over one or more MQTT brokers with topic listeners."""

from __future__ import annotations

import abc
import logging
import threading
from collections.abc import Callable, Iterable

from .models import MqttMessage, MqttOption
from .mqtt_client import MqttCallbacks, MqttClient
from .mqtt_context import MqttContext

logger = logging.getLogger(__name__)

SUBSCRIBE_QOS = 1


class Listener(abc.ABC):
    """Receives broker messages on the topics it subscribes to."""

    def message_check(self, topic: str) -> bool:
        """Return whether this listener handles ``topic``."""
        return topic in self.subscribe_topics()

    @abc.abstractmethod
    def on_message(self, topic: str, payload: str) -> object:
        """Handle a message accepted by ``message_check``."""

    @abc.abstractmethod
    def subscribe_topics(self) -> list[str]:
        """Return the broker topics this listener needs."""


class MqttTransport:
    """Publishes to every configured broker and dispatches what they deliver."""

    def __init__(
        self,
        options: Iterable[MqttOption],
        context: MqttContext | None = None,
        client_factory: Callable[[MqttOption], MqttClient] = MqttClient,
    ) -> None:
        self._options = list(options)
        self._context = context if context is not None else MqttContext()
        self._connected = False
        self._reconnected = False
        self._recv_callback: Callable[[str], object] | None = None
        self._listeners: list[Listener] = []
        self._listeners_lock = threading.Lock()
        self._confirmed: set[int] = set()
        self._confirm_lock = threading.Lock()

        callbacks = MqttCallbacks(
            connected=self.on_connected,
            received=self.on_received,
            sent=self.on_sent,
            subscribed=self.on_subscribed,
        )
        self._clients = []
        for option in self._options:
            client = client_factory(option)
            client.start(callbacks)
            self._clients.append(client)

    def __enter__(self) -> MqttTransport:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def connected(self) -> bool:
        """Whether the broker connection is up."""
        return self._connected

    @property
    def context(self) -> MqttContext:
        """The context that selects the send topic."""
        return self._context

    def send(self, data: str) -> tuple[bool, int]:
        """Publish ``data`` to the selected topic on every broker.

        Returns whether every broker accepted it and the message id assigned.
        """
        if not self._options:
            return False, 0
        first = self._options[0]
        topic = self._context.take_send_topic()
        qos = 0 if topic in first.qos0_topics else first.qos
        message = MqttMessage(topic=topic, payload=data, qos=qos, message_id=0)
        ok = True
        for client in self._clients:
            ok &= client.send(message)
        return ok, message.message_id

    def register_recv_callback(self, callback: Callable[[str], object] | None) -> None:
        """Set the function that receives the payload of every delivered message."""
        self._recv_callback = callback

    def add_listener(self, listener: Listener) -> None:
        """Register ``listener``, subscribing its topics at once when connected."""
        with self._listeners_lock:
            self._listeners.append(listener)
        if self._connected:
            for topic in listener.subscribe_topics():
                if not topic:
                    continue
                logger.info("Register new listener, subscribing topic: %s", topic)
                for client in self._clients:
                    client.subscribe(topic, SUBSCRIBE_QOS)

    def remove_listener(self, listener: Listener) -> None:
        """Unregister every registration of ``listener``."""
        with self._listeners_lock:
            self._listeners = [item for item in self._listeners if item is not listener]

    def _listener_snapshot(self) -> list[Listener]:
        with self._listeners_lock:
            return list(self._listeners)

    def on_connected(self, connected: bool) -> None:
        """Track the connection and resubscribe every listener topic on connect."""
        self._connected = connected
        if not connected:
            logger.warning("MQTT disconnected")
            return
        self._reconnected = True
        logger.info("MQTT connected, collecting topics from listeners...")
        topics = {
            topic
            for listener in self._listener_snapshot()
            for topic in listener.subscribe_topics()
            if topic
        }
        for topic in sorted(topics):
            for client in self._clients:
                client.subscribe(topic, SUBSCRIBE_QOS)
            logger.info("Subscribed topic: %s (QoS=%d)", topic, SUBSCRIBE_QOS)

    def on_received(self, message: MqttMessage) -> None:
        """Hand a delivered message to the receive callback and matching listeners."""
        if self._recv_callback is not None:
            self._context.recv_topic = message.topic
            self._recv_callback(message.payload)
        for listener in self._listener_snapshot():
            if listener.message_check(message.topic):
                listener.on_message(message.topic, message.payload)

    def on_sent(self, message_id: int) -> None:
        """Record that the broker acknowledged ``message_id``."""
        with self._confirm_lock:
            self._confirmed.add(message_id)

    def on_subscribed(self, mid: int, qos: list[int]) -> None:
        logger.info("Subscribed success: mid=%d, QoS count=%d", mid, len(qos))

    def confirm_last_data(self, message_id: int) -> bool:
        """Return whether the previous message may be considered delivered.

        After a reconnect every pending acknowledgement is dropped and the
        answer is yes; id 0 needs no acknowledgement.
        """
        with self._confirm_lock:
            if self._reconnected:
                self._reconnected = False
                self._confirmed.clear()
                return True
            if message_id == 0:
                return True
            if message_id in self._confirmed:
                self._confirmed.discard(message_id)
                return True
            return False

    def close(self) -> None:
        """Close every broker connection."""
        for client in self._clients:
            client.close()