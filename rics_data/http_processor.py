"""Requests and replies of the archive upload gateway."""

from __future__ import annotations

import json
import os
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol


class _TagSource(Protocol):
    def compressed_tag(self) -> tuple[str, str]: ...


@dataclass
class HttpRequest:
    """An HTTP request ready to be sent to the gateway."""

    method: str
    uri: str
    content_type: str
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class FileReply:
    """The gateway's answer to a check or upload request."""

    code: int = 0
    message: str = ""


def parse_reply(data: str | bytes) -> FileReply | None:
    """Parse a gateway reply; return None unless it is a JSON object."""
    try:
        value = json.loads(data)
    except (ValueError, TypeError):
        return None
    if not isinstance(value, dict):
        return None
    reply = FileReply()
    code = value.get("code")
    if isinstance(code, int) and not isinstance(code, bool):
        reply.code = code
    message = value.get("message")
    if isinstance(message, str):
        reply.message = message
    return reply


class GetFileNameProcessor:
    """Asks the gateway whether the next archive's digest is already known."""

    METHOD = "GET"
    URL = "/api-gateway/gateway/cache/checkFile/"
    CONTENT_TYPE = "application/json"

    def __init__(self, file_repository: _TagSource) -> None:
        self._file_repository = file_repository

    def serialize(self, command: Any = None) -> HttpRequest:
        """Build the check request for the next archive."""
        md5, _ = self._file_repository.compressed_tag()
        return HttpRequest(method=self.METHOD, uri=self.URL + md5,
                           content_type=self.CONTENT_TYPE)

    def deserialize(self, data: str | bytes) -> FileReply | None:
        return parse_reply(data)


def _form_part(boundary: str, disposition: str, content: bytes,
               content_type: str | None = None) -> bytes:
    header = f"--{boundary}\r\nContent-Disposition: {disposition}\r\n"
    if content_type:
        header += f"Content-Type: {content_type}\r\n"
    return header.encode("utf-8") + b"\r\n" + content + b"\r\n"


class PostFileProcessor:
    """Uploads the next archive as a multipart form."""

    METHOD = "POST"
    URL = "/api-gateway/gateway/cache/upload"
    CONTENT_TYPE = "multipart/form-data"

    def __init__(self, file_repository: _TagSource, serial_number: str = "") -> None:
        self._file_repository = file_repository
        self._serial_number = serial_number

    def serialize(self, command: Any = None) -> HttpRequest:
        """Build the upload request; raises OSError when the archive cannot be read."""
        _, path = self._file_repository.compressed_tag()
        with open(path, "rb") as stream:
            content = stream.read()
        file_name = path[path.rfind("/") + 1:]
        topic = path[path.find("-") + 1:].replace(".bz2", "")
        fields = (("fileName", file_name), ("topic", topic), ("sn", self._serial_number))

        boundary = "MIME_boundary_" + uuid.uuid4().hex[:16].upper()
        chunks = [
            _form_part(boundary, f'form-data; name="{name}"', value.encode("utf-8"))
            for name, value in fields
        ]
        chunks.append(_form_part(
            boundary,
            f'form-data; name="file"; filename="{os.fspath(path)}"',
            content,
            "application/octet-stream",
        ))
        chunks.append(f"--{boundary}--\r\n".encode("utf-8"))
        return HttpRequest(method=self.METHOD, uri=self.URL,
                           content_type=f"{self.CONTENT_TYPE}; boundary={boundary}",
                           body=b"".join(chunks))

    def deserialize(self, data: str | bytes) -> FileReply | None:
        return parse_reply(data)