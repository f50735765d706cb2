"""Helpers for ``data:<mime>;base64,<payload>`` image references."""

from __future__ import annotations

import base64
import binascii
import re

_DATA_URI_RE = re.compile(r"^data:(?P<mime>[^;,]*)(?P<base64>;base64)?,(?P<payload>.*)$", re.DOTALL)


def is_data_uri(value: str) -> bool:
    return value.startswith("data:")


def to_data_uri(data: bytes | str, mime_type: str) -> str:
    """Encode image bytes (or an already base64 string) as a ``data:`` URI."""
    if isinstance(data, bytes):
        data = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{data}"


def decode_data_uri(value: str) -> tuple[bytes, str]:
    """Return ``(payload_bytes, mime_type)`` for a base64 ``data:`` URI.

    Raises ``ValueError`` for anything else.
    """
    match = _DATA_URI_RE.match(value)
    if not match or not match.group("base64"):
        raise ValueError("Not a base64 data URI")
    try:
        payload = base64.b64decode(match.group("payload"), validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 payload: {exc}") from exc
    return payload, match.group("mime") or "application/octet-stream"
