from types import SimpleNamespace

import pytest

from rics_data.models import MqttMessage, MqttOption
from rics_data.mqtt_client import MqttCallbacks, MqttClient


@pytest.fixture
def recorder():
    events = {"connected": [], "received": [], "sent": [], "subscribed": []}
    callbacks = MqttCallbacks(
        connected=events["connected"].append,
        received=events["received"].append,
        sent=events["sent"].append,
        subscribed=lambda mid, qos: events["subscribed"].append((mid, qos)),
    )
    return events, callbacks


def test_send_with_empty_topic_fails_and_keeps_id():
    client = MqttClient(MqttOption(host=""))
    message = MqttMessage(topic="", payload="data", qos=1)
    assert client.send(message) is False
    assert message.message_id == 0


def test_send_with_wildcard_topic_fails():
    client = MqttClient(MqttOption(host=""))
    assert client.send(MqttMessage(topic="device/#", payload="x", qos=0)) is False


def test_subscribe_with_empty_topic_fails():
    client = MqttClient(MqttOption(host=""))
    assert client.subscribe("", 1) is False


def test_subscribe_without_connection_fails():
    client = MqttClient(MqttOption(host=""))
    assert client.subscribe("command/sn/lock", 1) is False


def test_persistent_session_without_client_id_is_rejected():
    with pytest.raises(RuntimeError):
        MqttClient(MqttOption(host="", clean_session=False))


def test_start_twice_raises(recorder):
    _, callbacks = recorder
    client = MqttClient(MqttOption(host=""))
    client.start(callbacks)
    try:
        with pytest.raises(RuntimeError, match="already started"):
            client.start(callbacks)
    finally:
        client.close()


def test_invalid_port_never_reports_connection(recorder):
    events, callbacks = recorder
    with MqttClient(MqttOption(host="localhost", port=0)) as client:
        client.start(callbacks)
    assert events["connected"] == []


def test_insecure_tls_without_context_raises(recorder):
    _, callbacks = recorder
    client = MqttClient(MqttOption(host="localhost", port=8883, insecure=True))
    with pytest.raises(RuntimeError, match="TLS insecure set failed"):
        client.start(callbacks)


def test_missing_cafile_raises(recorder, tmp_path):
    _, callbacks = recorder
    option = MqttOption(host="localhost", cafile=str(tmp_path / "missing.pem"))
    client = MqttClient(option)
    with pytest.raises(RuntimeError, match="TLS init failed"):
        client.start(callbacks)


def test_connect_and_disconnect_are_forwarded(recorder):
    events, callbacks = recorder
    client = MqttClient(MqttOption(host=""))
    client.callbacks = callbacks
    client._on_connect(None, None, {}, 0)
    client._on_connect(None, None, {}, 5)
    client._on_disconnect(None, None, 7)
    assert events["connected"] == [True, False, False]


def test_received_message_is_converted(recorder):
    events, callbacks = recorder
    client = MqttClient(MqttOption(host=""))
    client.callbacks = callbacks
    raw = SimpleNamespace(topic="command/sn/lock", payload=b'{"Action": 1}', qos=1, mid=4)
    client._on_message(None, None, raw)
    assert events["received"] == [
        MqttMessage(topic="command/sn/lock", payload='{"Action": 1}', qos=1, message_id=4)
    ]


def test_empty_payload_becomes_empty_string(recorder):
    events, callbacks = recorder
    client = MqttClient(MqttOption(host=""))
    client.callbacks = callbacks
    client._on_message(None, None, SimpleNamespace(topic="t/a", payload=None, qos=0, mid=0))
    assert events["received"][0].payload == ""


def test_subscribe_and_publish_acks_are_forwarded(recorder):
    events, callbacks = recorder
    client = MqttClient(MqttOption(host=""))
    client.callbacks = callbacks
    client._on_subscribe(None, None, 3, (1, 0))
    client._on_publish(None, None, 9)
    assert events["subscribed"] == [(3, [1, 0])]
    assert events["sent"] == [9]