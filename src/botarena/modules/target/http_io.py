"""Minimal HTTP/1.1 request parsing and response writing over asyncio streams."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from botarena.modules.detector import MouseMovement

logger = logging.getLogger(__name__)


@dataclass
class HttpRequest:
    """Parsed inbound request."""

    method: str
    path: str
    query: dict[str, str] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)  # lower-cased names
    body: bytes = b""

    def header(self, name: str, default: str = "") -> str:
        return self.headers.get(name.lower(), default)


@dataclass
class HttpResponse:
    """Outbound response; ``body`` is serialised as JSON unless already bytes."""

    status: int = 200
    body: Any = None
    headers: dict[str, str] = field(default_factory=dict)
    content_type: str = "application/json"

    def encode_body(self) -> bytes:
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, str):
            return self.body.encode()
        return json.dumps(self.body).encode()


async def read_request(reader: asyncio.StreamReader, timeout: float) -> HttpRequest | None:
    """Read one request from the stream; returns None on EOF or a malformed request line."""
    first_line = await asyncio.wait_for(reader.readline(), timeout=timeout)
    if not first_line:
        return None
    parts = first_line.decode("utf-8", errors="replace").strip().split()
    if len(parts) < 2:
        return None
    method, target = parts[0].upper(), parts[1]

    headers: dict[str, str] = {}
    while True:
        line = await asyncio.wait_for(reader.readline(), timeout=timeout)
        text = line.decode("utf-8", errors="replace").strip()
        if not text:
            break
        key, _, value = text.partition(":")
        if value:
            headers[key.strip().lower()] = value.strip()

    body = b""
    try:
        length = int(headers.get("content-length", "0"))
    except ValueError:
        length = 0
    if length > 0:
        body = await asyncio.wait_for(reader.readexactly(length), timeout=timeout)

    url = urlsplit(target)
    return HttpRequest(
        method=method,
        path=url.path or "/",
        query=dict(parse_qsl(url.query, keep_blank_values=True)),
        headers=headers,
        body=body,
    )


def write_response(writer: asyncio.StreamWriter, response: HttpResponse) -> None:
    """Write a complete response and mark the connection for closing."""
    payload = response.encode_body()
    reason = HTTPStatus(response.status).phrase
    writer.write(f"HTTP/1.1 {response.status} {reason}\r\n".encode())
    headers = {
        "Content-Type": response.content_type,
        "Content-Length": str(len(payload)),
        "Connection": "close",
        **response.headers,
    }
    for key, value in headers.items():
        writer.write(f"{key}: {value}\r\n".encode())
    writer.write(b"\r\n")
    writer.write(payload)


def parse_mouse_movements(raw: str) -> list[MouseMovement] | None:
    """Decode the X-Mouse-Movements header; malformed input counts as absent."""
    if not raw:
        return None
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            return None
        return [MouseMovement.from_dict(point) for point in data]
    except (ValueError, KeyError, TypeError):
        logger.debug("Ignoring malformed mouse movement header")
        return None


def parse_int_header(raw: str) -> int | None:
    """Decode an integer header; malformed input counts as absent."""
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None
