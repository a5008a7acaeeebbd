"""Selection of the topic the next outgoing message is published to."""

from __future__ import annotations

import threading
from collections.abc import Mapping


class MqttContext:
    """Holds the send topic between selecting it and sending.

    Selecting a topic or command claims the context; taking the send topic
    releases it, so one selection is paired with one send.
    """

    def __init__(self, command_topics: Mapping[int, str] | None = None) -> None:
        self._command_topics = dict(command_topics or {})
        self._send_lock = threading.Lock()
        self._topic = ""
        self._command: int | None = None
        self.recv_topic = ""

    def select_command(self, command: int) -> bool:
        """Select the topic mapped to ``command``; return whether it is known."""
        self._send_lock.acquire()
        self._topic = ""
        self._command = command
        return command in self._command_topics

    def select_topic(self, topic: str) -> bool:
        """Select an explicit send topic."""
        self._send_lock.acquire()
        self._topic = topic
        self._command = None
        return True

    def take_send_topic(self) -> str:
        """Return the selected topic (or "") and release the context."""
        if self._topic:
            topic = self._topic
        elif self._command is not None:
            topic = self._command_topics.get(self._command, "")
        else:
            topic = ""
        try:
            self._send_lock.release()
        except RuntimeError:
            pass
        return topic