"""Process-wide registry of shared service objects."""

from __future__ import annotations

import enum
import threading
from typing import Any


class InjectionKey(enum.Enum):
    """Keys under which shared objects are registered."""

    CONFIG_DATA_COLLECT = enum.auto()
    CONFIG_RICS = enum.auto()
    TRANSPORT = enum.auto()
    DATA_REPORT = enum.auto()
    FILE_UPLOAD = enum.auto()
    CACHE_OP = enum.auto()
    FILE_OP = enum.auto()
    DATA_COLLECT_SERVICE = enum.auto()


class Injector:
    """A keyed object store with a shared default instance."""

    _instance: Injector | None = None
    _instance_lock = threading.Lock()

    def __init__(self) -> None:
        self._objects: dict[InjectionKey, Any] = {}
        self._lock = threading.Lock()

    @classmethod
    def instance(cls) -> Injector:
        """Return the shared injector, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def insert(self, key: InjectionKey, obj: Any) -> None:
        """Register ``obj`` under ``key``, replacing any earlier object."""
        with self._lock:
            self._objects[key] = obj

    def get(self, key: InjectionKey) -> Any:
        """Return the object registered under ``key``, or None."""
        with self._lock:
            return self._objects.get(key)