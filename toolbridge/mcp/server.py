"""JSON-RPC 2.0 dispatcher for the MCP tool surface.

Protocol-level failures always come back as a JSON-RPC error envelope;
this layer never decides HTTP status codes.  The transport (see
``toolbridge.http.session``) hands it raw body bytes and writes
whatever dict comes back.

Methods:
  - initialize  → fixed capability descriptor
  - tools/list  → schemas of every registered tool
  - tools/call  → run one tool by name
"""

from __future__ import annotations

import inspect
import json
import logging
from typing import Any

from toolbridge.config.settings import settings
from toolbridge.mcp.tools import ToolRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 helpers
# ---------------------------------------------------------------------------


def _jsonrpc_response(id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": id, "result": result}


def _jsonrpc_error(id: Any, code: int, message: str, data: Any = None) -> dict:
    error = {"code": code, "message": message}
    if data is not None:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": id, "error": error}


def encode_message(message: dict) -> bytes:
    """Compact UTF-8 JSON, as written on the wire."""
    return json.dumps(message, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


# Error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


class RpcError(Exception):
    """Raised by a method handler to produce a JSON-RPC error envelope."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class MCPDispatcher:
    """Maps a JSON-RPC method to its handler using one tool registry.

    The registry is passed in at construction and only read afterwards,
    so a single dispatcher is shared by every session.
    """

    def __init__(
        self,
        registry: ToolRegistry,
        *,
        protocol_version: str | None = None,
        server_name: str | None = None,
        server_version: str | None = None,
    ) -> None:
        self.registry = registry
        self.server_info = {
            "name": server_name or settings.SERVER_NAME,
            "version": server_version or settings.SERVER_VERSION,
        }
        self.protocol_version = protocol_version or settings.PROTOCOL_VERSION

        # Method dispatch table
        self._methods: dict[str, Any] = {
            "initialize": self._handle_initialize,
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
        }

    # --- Protocol handlers ---

    async def _handle_initialize(self, params: Any) -> dict[str, Any]:
        return {
            "protocolVersion": self.protocol_version,
            "serverInfo": dict(self.server_info),
            "capabilities": {"tools": {}},
        }

    async def _handle_tools_list(self, params: Any) -> dict[str, Any]:
        return {"tools": self.registry.list_schemas()}

    async def _handle_tools_call(self, params: Any) -> Any:
        if not isinstance(params, dict):
            raise RpcError(INVALID_PARAMS, "Invalid params: expected an object")

        tool_name = params.get("name")
        if not isinstance(tool_name, str):
            raise RpcError(INVALID_PARAMS, "Invalid params: 'name' must be a string")

        arguments = params.get("arguments", {})
        if not isinstance(arguments, dict):
            raise RpcError(
                INVALID_PARAMS, "Invalid params: 'arguments' must be an object"
            )

        tool = self.registry.get(tool_name)
        if tool is None:
            raise RpcError(INVALID_PARAMS, f"Unknown tool: {tool_name}")

        logger.info("MCP tool call: %s", tool_name)
        try:
            result = tool.execute(arguments)
            if inspect.isawaitable(result):
                result = await result
        except Exception as exc:
            logger.exception("Tool %s failed", tool_name)
            raise RpcError(INTERNAL_ERROR, f"Tool execution error: {exc}") from exc
        return result

    # --- Message routing ---

    async def handle_body(self, body: bytes) -> dict[str, Any]:
        """Parse a raw request body and dispatch it."""
        try:
            message = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as exc:
            logger.warning("Unparseable JSON-RPC body: %s", exc)
            return _jsonrpc_error(None, PARSE_ERROR, "Parse error")

        if not isinstance(message, dict):
            return _jsonrpc_error(None, INVALID_REQUEST, "Invalid Request")
        return await self.handle_message(message)

    async def handle_message(self, message: dict[str, Any]) -> dict[str, Any]:
        """Route one decoded JSON-RPC request to its handler."""
        msg_id = message.get("id")

        method = message.get("method")
        if not isinstance(method, str):
            return _jsonrpc_error(msg_id, INVALID_REQUEST, "Invalid Request")

        handler = self._methods.get(method)
        if handler is None:
            logger.info("Unknown method: %s", method)
            return _jsonrpc_error(msg_id, METHOD_NOT_FOUND, "Method not found")

        try:
            result = await handler(message.get("params"))
        except RpcError as exc:
            return _jsonrpc_error(msg_id, exc.code, exc.message)
        return _jsonrpc_response(msg_id, result)

    async def respond(self, body: bytes) -> bytes:
        """Dispatch ``body`` and return the encoded response payload."""
        response = await self.handle_body(body)
        try:
            return encode_message(response)
        except (TypeError, ValueError):
            logger.exception("Response for id %r is not JSON-serializable", response.get("id"))
            return encode_message(
                _jsonrpc_error(response.get("id"), INTERNAL_ERROR, "Internal error")
            )
