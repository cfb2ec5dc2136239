"""Server-Sent Events stream for the push channel.

After the response head, the client gets one ``endpoint`` event telling
it where to POST JSON-RPC messages, then a ``: keepalive`` comment every
interval.  The stream ends when a write fails or the transport has
already been lost.  A client that only half-closes its side keeps
receiving keepalives.  No error frame is sent because the transport
itself is gone.
"""

from __future__ import annotations

import asyncio
import json
import logging

from toolbridge.http.parser import Connection
from toolbridge.http.responses import sse_head

logger = logging.getLogger(__name__)

MESSAGE_ENDPOINT = "/message"
KEEPALIVE_FRAME = b": keepalive\n\n"


def format_event(data: dict) -> bytes:
    """One ``data:`` event with compact JSON and the blank-line terminator."""
    return f"data: {json.dumps(data, separators=(',', ':'))}\n\n".encode("utf-8")


def endpoint_event(endpoint: str = MESSAGE_ENDPOINT) -> bytes:
    return format_event(
        {
            "jsonrpc": "2.0",
            "method": "endpoint",
            "params": {"endpoint": endpoint},
        }
    )


class SSEStream:
    """Heartbeat loop for one SSE connection."""

    def __init__(self, conn: Connection, keepalive_interval: float = 30.0) -> None:
        self.conn = conn
        self.keepalive_interval = keepalive_interval
        self.pings_sent = 0

    async def open(self) -> None:
        """Write the response head and the endpoint event in one frame."""
        await self.conn.write(sse_head() + endpoint_event())
        logger.info("SSE stream established for %s", self.conn.peer)

    async def run(self) -> None:
        """Send keepalives until the connection fails.  Never raises on I/O errors."""
        try:
            await self.open()
            while True:
                await asyncio.sleep(self.keepalive_interval)
                if self.conn.writer.is_closing():
                    # Transport already reported connection_lost.
                    logger.info("SSE client %s disconnected", self.conn.peer)
                    break
                await self.conn.write(KEEPALIVE_FRAME)
                self.pings_sent += 1
                logger.debug("SSE keepalive #%d to %s", self.pings_sent, self.conn.peer)
        except (ConnectionError, OSError) as exc:
            logger.debug("SSE stream to %s ended: %s", self.conn.peer, exc)
