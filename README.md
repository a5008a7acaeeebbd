# rics-data

`rics_data` is a library of building blocks for moving robot data to a fleet
management server (FMS): an MQTT transport that publishes to one or more
brokers and dispatches incoming messages to listeners, a listener for fleet
commands, a disk cache that batches messages per topic and compresses them
into bzip2 archives, and builders for the HTTP requests that upload those
archives.

## Installation

```
pip install .
```

To run the tests as well:

```
pip install ".[test]"
pytest
```

## Modules

- `rics_data.models`: dataclasses for the data that moves around.
  `MqttSimple` (topic, message), `MqttMessage` (topic, payload, qos,
  message_id), `MqttOption` (broker host, port, keep-alive, QoS, TLS settings,
  credentials, `qos0_topics`), `DataCollectOption` (`cache_file_path`,
  `disk_free_percent`, `upload_fms_config`), `UploadConfig`,
  `RicsBusinessOption` and `OfflineDataInfo` (md5, name, size of an archive).
- `rics_data.mqtt_context.MqttContext`: holds the topic the next send goes
  to. `select_topic(topic)` names it directly; `select_command(command)` looks
  it up in the mapping given to the constructor and returns whether the
  command is known. `take_send_topic()` returns the selected topic (or `""`)
  and releases the context, so each selection pairs with one send.
  `recv_topic` holds the topic of the last delivered message.
- `rics_data.mqtt_client.MqttClient`: one broker connection built on
  paho-mqtt. `start(callbacks)` sets credentials and TLS (when `cafile` is set
  or the port is 8883 or 2884) and starts a background thread that keeps
  reconnecting until `close()`. `send(message)` publishes and sets the
  message's `message_id`; `subscribe(topic, qos)` subscribes. Events reach the
  caller through `MqttCallbacks` (`connected`, `received`, `sent`,
  `subscribed`).
- `rics_data.mqtt_transport.MqttTransport`: creates one client per
  `MqttOption` (through `client_factory`, `MqttClient` by default).
  `send(data)` publishes to the topic taken from the context on every broker,
  with QoS 0 for topics in the first option's `qos0_topics`, and returns
  `(ok, message_id)`. Listeners registered with `add_listener` have their
  topics subscribed on every connect; `on_received` passes each message to the
  receive callback and to every listener whose `message_check` accepts the
  topic. `confirm_last_data(message_id)` reports whether the broker has
  acknowledged a message (always true after a reconnect or for id 0).
- `rics_data.mqtt_transport.Listener`: the abstract base for listeners:
  `subscribe_topics()`, `on_message(topic, payload)` and `message_check(topic)`.
- `rics_data.fms_listener.FmsMessageListener`: subscribes to
  `command/<sn>/login-ack`, `connect/<sn>/lock` and `command/<sn>/notify-ack`,
  accepts any topic containing `/login-ack`, `/lock` or `/notify-ack`, and
  calls its publisher with `"/rics/fms_to_robot"` and an `MqttSimple` for each
  message. Without a publisher, `on_message` returns `False`.
- `rics_data.file_repository.FileRepository`: the disk cache under
  `cache_file_path`. `sortout_from_cache(topic, message)` strips `MsgID` and
  `DeviceCode` from a JSON message and batches it as a compact line per topic;
  `cache_proc()` appends the batches to per-topic temp files and compresses
  those that reached `min_compress_size` into timestamped `.bz2` archives.
  Archives are indexed by MD5 (`compressed_tag()`, `sendable_files()`,
  `sync_sendable_files()`), the compressed directory is watched with watchdog
  unless `watch=False`, and `free_disk()` deletes the oldest archive when free
  space falls to `disk_free_percent`. `format_msg` and `file_md5` are helpers.
- `rics_data.http_processor`: `GetFileNameProcessor` builds the GET request
  that checks the next archive's MD5, `PostFileProcessor` builds the multipart
  POST that uploads it; both return an `HttpRequest`. `parse_reply` reads a
  gateway reply into a `FileReply` (code, message), or `None` if it is not a
  JSON object.
- `rics_data.authentication`: `Authenticator(key, username).signature(...)`
  builds an HMAC-SHA256 authorization value; `now_gmt`, `sha256`,
  `hmac_sha256` and `base64_encode` are the helpers it uses.
- `rics_data.object_injection.Injector`: a keyed object registry
  (`InjectionKey`) with a shared instance from `Injector.instance()`.
- `rics_data.thread_pool`: `TaskThread` runs a task in its own thread with at
  most one queued run; `ThreadPool.add_task(task, interval_ns, loop)` starts
  one and, with `loop=True`, repeats it on a timer.
- `rics_data.report_worker.ReportWorker`: calls `report_data()` then
  `upload_file()` on the service object it is given, for use as a pool task.

## Examples

```python
from rics_data.mqtt_context import MqttContext

context = MqttContext({1: "device/SN-EXAMPLE-0001/status"})
context.select_command(1)
print(context.take_send_topic())  # device/SN-EXAMPLE-0001/status
```

```python
from rics_data.file_repository import FileRepository
from rics_data.models import DataCollectOption

option = DataCollectOption(cache_file_path="/tmp/rics-cache")
with FileRepository(option, min_compress_size=0, watch=False) as repository:
    repository.sortout_from_cache("device/SN-EXAMPLE-0001/status", '{"speed": 1}')
    repository.cache_proc()
    repository.sync_sendable_files()
    print(repository.sendable_files())
```

```python
from rics_data.authentication import Authenticator, now_gmt

authenticator = Authenticator("secret", "gateway-user")
print(authenticator.signature("GET", "/api-gateway/gateway/cache/checkFile/", "", now_gmt()))
```

## What the package does not do

- It installs no command and has no service that runs by itself; the parts
  have to be wired together by the caller.
- It has no in-memory queue of collected messages, no component that fills in
  `MsgID` and `DeviceCode` and publishes queued messages, and no
  data-collection service object. `ReportWorker` expects the caller to supply
  an object with `report_data()` and `upload_file()`.
- It does not send HTTP requests. The processors build `HttpRequest` values
  and parse replies; sending them to the gateway is left to the caller.
- It does not read configuration files.