"""Reconnecting MQTT client whose network loop runs in a background thread."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import paho.mqtt.client as mqtt

from .models import MqttMessage, MqttOption

logger = logging.getLogger(__name__)

TLS_PORTS = (8883, 2884)
INVALID_SETTINGS_DELAY = 5.0
RECONNECT_DELAY = 1.0
LOOP_TIMEOUT = 1.0


@dataclass
class MqttCallbacks:
    """Hooks called from the network thread."""

    connected: Callable[[bool], object] | None = None
    received: Callable[[MqttMessage], object] | None = None
    sent: Callable[[int], object] | None = None
    subscribed: Callable[[int, list[int]], object] | None = None


def _new_paho_client(option: MqttOption) -> mqtt.Client:
    kwargs: dict[str, Any] = {
        "client_id": "",
        "clean_session": option.clean_session,
        "protocol": mqtt.MQTTv311,
    }
    api_version = getattr(mqtt, "CallbackAPIVersion", None)
    if api_version is not None:
        return mqtt.Client(api_version.VERSION1, **kwargs)
    return mqtt.Client(**kwargs)


class MqttClient:
    """One broker connection that keeps reconnecting until closed."""

    def __init__(self, option: MqttOption) -> None:
        self._option = option
        try:
            self._client = _new_paho_client(option)
        except ValueError as exc:
            raise RuntimeError(f"mqtt client creation failed: {exc}") from exc
        self.callbacks = MqttCallbacks()
        self._exit = threading.Event()
        self._thread: threading.Thread | None = None

    def __enter__(self) -> MqttClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def start(self, callbacks: MqttCallbacks) -> None:
        """Configure the connection and start the background connect loop."""
        if self._thread is not None:
            raise RuntimeError("client already started")
        self.callbacks = callbacks
        option = self._option
        client = self._client

        if option.username and option.password:
            client.username_pw_set(option.username, option.password)

        if option.cafile or option.port in TLS_PORTS:
            if option.cafile:
                try:
                    client.tls_set(ca_certs=option.cafile)
                except (ValueError, OSError) as exc:
                    raise RuntimeError(f"TLS init failed: {exc}") from exc
            if option.insecure:
                try:
                    client.tls_insecure_set(True)
                except ValueError as exc:
                    raise RuntimeError(f"TLS insecure set failed: {exc}") from exc

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.on_subscribe = self._on_subscribe
        client.on_publish = self._on_publish
        client.max_inflight_messages_set(option.max_inflight)

        self._thread = threading.Thread(target=self._loop, name="mqtt-loop", daemon=True)
        self._thread.start()

    def _loop(self) -> None:
        option = self._option
        while not self._exit.is_set():
            logger.info("Connecting to: Host=%s, Port=%d, KeepAlive=%d",
                        option.host, option.port, option.keep_alive)
            if not option.host:
                logger.error("MQTT host address is empty!")
                self._exit.wait(INVALID_SETTINGS_DELAY)
                continue
            if not 0 < option.port <= 65535:
                logger.error("Invalid port number: %d", option.port)
                self._exit.wait(INVALID_SETTINGS_DELAY)
                continue
            try:
                rc = self._client.connect(option.host, option.port, option.keep_alive)
            except (OSError, ValueError) as exc:
                logger.error("Network error[mosquitto_connect fail: %s], Connect failed, retry ...",
                             exc)
            else:
                if rc != mqtt.MQTT_ERR_SUCCESS:
                    logger.error("Network error[mosquitto_connect fail: %s], Connect failed, "
                                 "retry ...", mqtt.error_string(rc))
                elif not self._exit.is_set():
                    rc = self._client.loop_forever(timeout=LOOP_TIMEOUT)
                    if rc != mqtt.MQTT_ERR_SUCCESS:
                        logger.error("network loop returned! error=%s", mqtt.error_string(rc))
            self._exit.wait(RECONNECT_DELAY)

    def send(self, message: MqttMessage) -> bool:
        """Publish ``message``; its ``message_id`` is set to the id assigned."""
        if not message.topic:
            return False
        try:
            info = self._client.publish(message.topic, message.payload, message.qos, retain=False)
        except ValueError as exc:
            logger.error("publish to %s refused: %s", message.topic, exc)
            return False
        message.message_id = info.mid
        logger.info("Send: topic=%s, payload=%s, qos=%d, messageId=%d",
                    message.topic, message.payload, message.qos, message.message_id)
        return info.rc == mqtt.MQTT_ERR_SUCCESS

    def subscribe(self, topic: str, qos: int = 1) -> bool:
        """Subscribe to ``topic``; return whether the request was sent."""
        if not topic:
            return False
        try:
            rc, mid = self._client.subscribe(topic, qos)
        except ValueError as exc:
            logger.error("subscribe to %s refused: %s", topic, exc)
            return False
        logger.info("Subscribe topic: %s, qos: %d, mid: %s", topic, qos, mid)
        return rc == mqtt.MQTT_ERR_SUCCESS

    def close(self) -> None:
        """Disconnect and stop the background loop."""
        self._exit.set()
        try:
            self._client.disconnect()
        except (OSError, ValueError):
            pass
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    # ----------------------------------------------------------- callbacks

    def _on_connect(self, client: Any, userdata: Any, flags: Any, rc: Any) -> None:
        ok = rc == 0
        if self.callbacks.connected is not None:
            self.callbacks.connected(ok)
        if ok:
            logger.info("mqtt connect success")
        else:
            logger.error("mqtt connect failed, reasonCode: %s", rc)

    def _on_disconnect(self, client: Any, userdata: Any, rc: Any) -> None:
        if self.callbacks.connected is not None:
            self.callbacks.connected(False)
        if rc != 0:
            logger.error("Mqtt disconnected: reasonCode: %s", rc)

    def _on_message(self, client: Any, userdata: Any, msg: Any) -> None:
        payload = bytes(msg.payload or b"").decode("utf-8", errors="replace")
        message = MqttMessage(topic=msg.topic, payload=payload, qos=msg.qos, message_id=msg.mid)
        logger.info("Received: topic=%s, payload=%s, qos=%d",
                    message.topic, message.payload, message.qos)
        if self.callbacks.received is not None:
            self.callbacks.received(message)

    def _on_subscribe(self, client: Any, userdata: Any, mid: int, granted_qos: Any) -> None:
        qos_list = list(granted_qos)
        logger.info("Subscribed: mid=%d, qosCount=%d", mid, len(qos_list))
        if self.callbacks.subscribed is not None:
            self.callbacks.subscribed(mid, qos_list)

    def _on_publish(self, client: Any, userdata: Any, mid: int) -> None:
        if self.callbacks.sent is not None:
            self.callbacks.sent(mid)