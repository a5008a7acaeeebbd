"""Plain data records shared by the transport and data-collection layers."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class MqttSimple:
    """A topic/message pair as carried on the internal message bus."""

    topic: str = ""
    message: str = ""


@dataclass
class MqttMessage:
    """A message exchanged with an MQTT broker."""

    topic: str = ""
    payload: str = ""
    qos: int = 0
    message_id: int = 0


@dataclass
class MqttOption:
    """Connection settings for one MQTT broker."""

    host: str = ""
    port: int = 1883
    keep_alive: int = 60
    qos: int = 1
    max_inflight: int = 10
    reconnect_time: int = 5
    version: int = 4
    insecure: bool = False
    clean_session: bool = True
    cafile: str = ""
    username: str = ""
    password: str = ""
    robot_sn: str = ""
    qos0_topics: list[str] = field(default_factory=list)


@dataclass
class UploadConfig:
    """Address of the HTTP endpoint that receives cached files."""

    host: str = ""
    port: int = 0


@dataclass
class DataCollectOption:
    """Settings of the data-collection cache."""

    cache_file_path: str = ""
    disk_free_percent: int = 10
    upload_fms_config: UploadConfig = field(default_factory=UploadConfig)


@dataclass
class RicsBusinessOption:
    """Robot-wide business settings."""

    default_path: str = ""
    private_key: str = ""
    serial_number: str = ""


@dataclass
class OfflineDataInfo:
    """Description of a cached file waiting to be sent."""

    md5: str = ""
    name: str = ""
    size: int = 0