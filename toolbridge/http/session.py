"""Per-connection session: parse, route, then respond or stream.

Each accepted connection gets exactly one Session, run as its own task.
The lifecycle is strictly sequential::

    ACCEPTED → READING_HEADERS → ROUTED
        → READING_BODY → DISPATCHING → RESPONDING → CLOSED   (POST)
        → STREAMING → CLOSED                                 (GET, SSE)

Routing:
  - POST / or /message   → read body, dispatch as JSON-RPC
                           (400 if Content-Length is missing or invalid)
  - GET  / or /sse       → SSE stream
  - OPTIONS <any>        → CORS preflight (204)
  - anything else        → 404

RPC connections are closed after the single response, whatever the
outcome.  SSE connections stay open until the peer goes away.
"""

from __future__ import annotations

import enum
import logging

from toolbridge.http.parser import (
    BodyPhase,
    Connection,
    ConnectionClosedError,
    HeaderPhase,
    HttpParseError,
    ParsedRequest,
    content_length,
)
from toolbridge.http.responses import empty_response, preflight_response, rpc_response
from toolbridge.http.sse import SSEStream
from toolbridge.mcp.server import MCPDispatcher

logger = logging.getLogger(__name__)

RPC_PATHS = frozenset({"/", "/message"})
SSE_PATHS = frozenset({"/", "/sse"})


class SessionState(enum.Enum):
    ACCEPTED = "accepted"
    READING_HEADERS = "reading_headers"
    ROUTED = "routed"
    READING_BODY = "reading_body"
    DISPATCHING = "dispatching"
    RESPONDING = "responding"
    STREAMING = "streaming"
    CLOSED = "closed"


class Route(enum.Enum):
    RPC = "rpc"
    SSE = "sse"
    PREFLIGHT = "preflight"
    NOT_FOUND = "not_found"


def route_request(request: ParsedRequest) -> Route:
    """Pick the action for a parsed request line."""
    method = request.method
    path = request.route_path
    if method == "OPTIONS":
        return Route.PREFLIGHT
    if method == "POST" and path in RPC_PATHS:
        return Route.RPC
    if method == "GET" and path in SSE_PATHS:
        return Route.SSE
    return Route.NOT_FOUND


class Session:
    """Owns one connection from accept to close."""

    def __init__(
        self,
        conn: Connection,
        dispatcher: MCPDispatcher,
        keepalive_interval: float = 30.0,
    ) -> None:
        self.conn = conn
        self.dispatcher = dispatcher
        self.keepalive_interval = keepalive_interval
        self.state = SessionState.ACCEPTED
        self.request: ParsedRequest | None = None

    def _transition(self, state: SessionState) -> None:
        logger.debug("Session %s: %s → %s", self.conn.peer, self.state.value, state.value)
        self.state = state

    async def run(self) -> None:
        """Drive the connection through its lifecycle.  Always closes it."""
        try:
            await self._serve()
        except ConnectionClosedError as exc:
            logger.info("Connection %s closed early: %s", self.conn.peer, exc)
        except HttpParseError as exc:
            logger.warning("Malformed request from %s: %s", self.conn.peer, exc)
        except (ConnectionError, OSError) as exc:
            logger.info("I/O error on %s: %s", self.conn.peer, exc)
        except Exception:
            logger.exception("Unexpected error in session %s", self.conn.peer)
        finally:
            await self.conn.close()
            self._transition(SessionState.CLOSED)

    async def _serve(self) -> None:
        self._transition(SessionState.READING_HEADERS)
        request = await HeaderPhase().read(self.conn)
        self.request = request
        logger.info("Request: %s %s", request.method, request.path)
        logger.debug("Headers from %s: %s", self.conn.peer, request.headers)

        route = route_request(request)
        self._transition(SessionState.ROUTED)

        if route is Route.RPC:
            await self._handle_rpc(request)
        elif route is Route.SSE:
            await self._handle_sse()
        elif route is Route.PREFLIGHT:
            await self._respond(preflight_response())
        else:
            await self._respond(empty_response(404))

    async def _handle_rpc(self, request: ParsedRequest) -> None:
        try:
            length = content_length(request)
        except HttpParseError as exc:
            logger.warning("Rejecting request from %s: %s", self.conn.peer, exc)
            await self._respond(empty_response(400))
            return
        if length is None:
            logger.info("No Content-Length header from %s", self.conn.peer)
            await self._respond(empty_response(400))
            return

        self._transition(SessionState.READING_BODY)
        request.body = await BodyPhase(length).read(self.conn)

        self._transition(SessionState.DISPATCHING)
        payload = await self.dispatcher.respond(request.body)
        await self._respond(rpc_response(payload))

    async def _handle_sse(self) -> None:
        self._transition(SessionState.STREAMING)
        await SSEStream(self.conn, self.keepalive_interval).run()

    async def _respond(self, data: bytes) -> None:
        self._transition(SessionState.RESPONDING)
        await self.conn.write(data)
