"""HMAC request signing for the upload gateway."""

from __future__ import annotations

import base64
import hashlib
import hmac
from datetime import datetime

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _as_bytes(data: str | bytes) -> bytes:
    return data.encode("utf-8") if isinstance(data, str) else bytes(data)


def sha256(data: str | bytes) -> bytes:
    """Return the SHA-256 digest of ``data``."""
    return hashlib.sha256(_as_bytes(data)).digest()


def hmac_sha256(data: str | bytes, key: str | bytes) -> bytes:
    """Return the HMAC-SHA256 of ``data`` under ``key``."""
    return hmac.new(_as_bytes(key), _as_bytes(data), hashlib.sha256).digest()


def base64_encode(data: bytes, newline: bool = False) -> str:
    """Base64-encode ``data``; with ``newline`` break into 64-column lines."""
    encoded = base64.b64encode(data).decode("ascii")
    if not newline or not encoded:
        return encoded
    lines = [encoded[i:i + 64] for i in range(0, len(encoded), 64)]
    return "\n".join(lines) + "\n"


def now_gmt(now: datetime | None = None) -> str:
    """Format ``now`` (default: current local time) as an HTTP date string."""
    if now is None:
        now = datetime.now()
    return (
        f"{_DAYS[now.weekday()]}, {now.day:02d} {_MONTHS[now.month - 1]} "
        f"{now.year:04d} {now.hour:02d}:{now.minute:02d}:{now.second:02d} GMT"
    )


class Authenticator:
    """Builds HMAC authorization values for gateway requests."""

    def __init__(self, key: str, username: str) -> None:
        self._key = key
        self._username = username

    def signature(self, method: str, uri: str, body_signature: str, now_utc: str) -> str:
        """Return the authorization value for a request."""
        request_line = f"{method} {uri} HTTP/1.1"
        content = f"date: {now_utc}\n{request_line}"
        headers = "date request-line"
        if body_signature:
            content += f"\ndigest: {body_signature}"
            headers += " digest"
        signed = base64_encode(hmac_sha256(content, self._key))
        return (
            f'hmac username="{self._username}", algorithm="hmac-sha256", '
            f'headers="{headers}", signature="{signed}"'
        )