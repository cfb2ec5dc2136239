"""TCP listener: one Session task per accepted connection.

The registry is frozen before the first accept, so every session can
read it without locking.  There is no cap on concurrent connections.
"""

from __future__ import annotations

import asyncio
import logging

from toolbridge.config.settings import settings
from toolbridge.http.parser import Connection
from toolbridge.http.session import Session
from toolbridge.mcp.server import MCPDispatcher
from toolbridge.mcp.tools import ToolRegistry

logger = logging.getLogger(__name__)


class Listener:
    """Accepts connections and spawns a Session for each.

    Usage::

        listener = Listener(default_registry(), port=3000)
        await listener.serve_forever()
    """

    def __init__(
        self,
        registry: ToolRegistry,
        host: str | None = None,
        port: int | None = None,
        keepalive_interval: float | None = None,
        dispatcher: MCPDispatcher | None = None,
    ) -> None:
        self.registry = registry
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.keepalive_interval = (
            keepalive_interval
            if keepalive_interval is not None
            else settings.SSE_KEEPALIVE_SECONDS
        )
        self.dispatcher = dispatcher or MCPDispatcher(registry)
        self._server: asyncio.AbstractServer | None = None
        self._sessions: set[asyncio.Task] = set()

    async def _on_connection(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        conn = Connection(reader, writer)
        logger.info("New connection accepted from %s", conn.peer)
        session = Session(conn, self.dispatcher, self.keepalive_interval)
        task = asyncio.current_task()
        if task is not None:
            self._sessions.add(task)
        try:
            await session.run()
        finally:
            if task is not None:
                self._sessions.discard(task)

    async def start(self) -> None:
        """Freeze the registry and begin accepting connections."""
        if self._server is not None:
            raise RuntimeError("Listener already started")
        self.registry.freeze()
        self._server = await asyncio.start_server(
            self._on_connection, host=self.host, port=self.port
        )
        sockets = self._server.sockets or ()
        if sockets:
            # Resolve port 0 to the port actually bound.
            self.port = sockets[0].getsockname()[1]
        logger.info("MCP Server running on %s:%d", self.host, self.port)
        logger.info("Registered %d tool(s): %s", len(self.registry), self.registry.names())

    @property
    def active_sessions(self) -> int:
        return len(self._sessions)

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        async with self._server:
            await self._server.serve_forever()

    async def close(self) -> None:
        """Stop accepting and cancel sessions still running (SSE streams)."""
        if self._server is None:
            return
        self._server.close()
        for task in list(self._sessions):
            task.cancel()
        if self._sessions:
            await asyncio.gather(*list(self._sessions), return_exceptions=True)
        await self._server.wait_closed()
        self._server = None
        logger.info("MCP Server stopped")

    async def __aenter__(self) -> "Listener":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
