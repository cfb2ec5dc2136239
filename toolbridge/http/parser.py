"""Incremental HTTP/1.1 request framing.

The connection keeps its own read buffer.  Reading a request is split
into two phases:

  HeaderPhase  read until ``\\r\\n\\r\\n`` is in the buffer, then parse the
               request line and headers.  Bytes after the terminator
               stay buffered.
  BodyPhase    with ``bytes_remaining = Content-Length``: take what is
               already buffered (never more than needed), then read
               exactly the shortfall from the stream.

Both phases leave any surplus bytes in the buffer untouched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"
READ_CHUNK_SIZE = 64 * 1024
MAX_HEADER_BYTES = 64 * 1024


class HttpParseError(ValueError):
    """The request head or framing headers are malformed."""


class ConnectionClosedError(ConnectionError):
    """The peer closed the stream before a complete frame arrived."""


@dataclass
class ParsedRequest:
    """Request line, headers and (after the body phase) the body.

    Attributes:
        method: HTTP method as sent (e.g. ``POST``)
        path: Request target as sent, including any query string
        http_version: e.g. ``HTTP/1.1``
        headers: Lowercase header names to values
        body: Body bytes, or None until the body phase has run
    """

    method: str
    path: str
    http_version: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    @property
    def route_path(self) -> str:
        """Path without the query string, used for routing."""
        return self.path.partition("?")[0]

    def header(self, name: str, default: str | None = None) -> str | None:
        return self.headers.get(name.lower(), default)


class Connection:
    """A stream pair plus the explicit read buffer the phases share."""

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter | None = None,
        read_size: int = READ_CHUNK_SIZE,
    ) -> None:
        self.reader = reader
        self.writer = writer
        self.read_size = read_size
        self.buffer = bytearray()

    @property
    def peer(self) -> str:
        if self.writer is None:
            return "unknown"
        peer = self.writer.get_extra_info("peername")
        if isinstance(peer, tuple) and len(peer) >= 2:
            return f"{peer[0]}:{peer[1]}"
        return str(peer) if peer else "unknown"

    async def fill(self) -> int:
        """Append one chunk from the stream to the buffer."""
        chunk = await self.reader.read(self.read_size)
        if not chunk:
            raise ConnectionClosedError("peer closed the connection")
        self.buffer.extend(chunk)
        return len(chunk)

    async def write(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    async def close(self) -> None:
        if self.writer is None or self.writer.is_closing():
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            # Peer already gone; nothing left to flush.
            logger.debug("Connection %s closed with error", self.peer)


# ---------------------------------------------------------------------------
# Head parsing
# ---------------------------------------------------------------------------


def parse_header_line(line: str) -> tuple[str, str] | None:
    """Split ``Name: value`` on the first colon.  None if there is no colon."""
    key, sep, value = line.partition(":")
    if not sep:
        return None
    if value.startswith(" "):
        value = value[1:]
    if value.endswith("\r"):
        value = value[:-1]
    return key.lower(), value


def parse_head(head: bytes) -> ParsedRequest:
    """Parse the bytes before the header terminator."""
    # HTTP/1.1 header octets are ISO-8859-1; this decode cannot fail.
    lines = head.decode("latin-1").split("\n")

    parts = lines[0].rstrip("\r").split()
    method, path, version = (parts + ["", "", ""])[:3]

    headers: dict[str, str] = {}
    for line in lines[1:]:
        parsed = parse_header_line(line)
        if parsed is not None:
            headers[parsed[0]] = parsed[1]

    return ParsedRequest(method=method, path=path, http_version=version, headers=headers)


def content_length(request: ParsedRequest) -> int | None:
    """Declared body length, or None when the header is absent."""
    raw = request.headers.get("content-length")
    if raw is None:
        return None
    raw = raw.strip()
    if not (raw.isascii() and raw.isdigit()):
        raise HttpParseError(f"Invalid Content-Length: {raw!r}")
    return int(raw)


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------


@dataclass
class HeaderPhase:
    """Accumulate bytes until the header terminator is buffered."""

    max_header_bytes: int = MAX_HEADER_BYTES
    scanned: int = 0

    def find_terminator(self, buffer: bytearray) -> int:
        # Re-scan the last 3 bytes in case the terminator straddles chunks.
        start = max(0, self.scanned - (len(HEADER_TERMINATOR) - 1))
        index = buffer.find(HEADER_TERMINATOR, start)
        self.scanned = len(buffer)
        return index

    async def read(self, conn: Connection) -> ParsedRequest:
        while True:
            index = self.find_terminator(conn.buffer)
            if index >= 0:
                break
            if len(conn.buffer) > self.max_header_bytes:
                raise HttpParseError(
                    f"Header block exceeds {self.max_header_bytes} bytes"
                )
            await conn.fill()

        head = bytes(conn.buffer[:index])
        del conn.buffer[: index + len(HEADER_TERMINATOR)]
        return parse_head(head)


@dataclass
class BodyPhase:
    """Read exactly ``bytes_remaining`` body bytes."""

    bytes_remaining: int

    def take_buffered(self, buffer: bytearray) -> bytes:
        """Consume up to ``bytes_remaining`` bytes already sitting in ``buffer``."""
        count = min(len(buffer), self.bytes_remaining)
        taken = bytes(buffer[:count])
        del buffer[:count]
        self.bytes_remaining -= count
        return taken

    async def read(self, conn: Connection) -> bytes:
        body = bytearray(self.take_buffered(conn.buffer))
        if self.bytes_remaining:
            logger.debug(
                "Body: %d byte(s) buffered, reading %d more",
                len(body), self.bytes_remaining,
            )
            try:
                rest = await conn.reader.readexactly(self.bytes_remaining)
            except asyncio.IncompleteReadError as exc:
                raise ConnectionClosedError(
                    f"Incomplete body: expected {self.bytes_remaining} more "
                    f"byte(s), got {len(exc.partial)}"
                ) from exc
            body.extend(rest)
            self.bytes_remaining = 0
        return bytes(body)

    @property
    def done(self) -> bool:
        return self.bytes_remaining == 0


async def read_head(conn: Connection) -> ParsedRequest:
    """Suspend until a full request head is buffered, then parse it."""
    return await HeaderPhase().read(conn)


async def read_body(conn: Connection, length: int) -> bytes:
    return await BodyPhase(length).read(conn)
