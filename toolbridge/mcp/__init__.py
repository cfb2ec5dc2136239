"""MCP (Model Context Protocol) tool surface for toolbridge.

Exposes a registry of named, schema-described tools through the
``initialize`` / ``tools/list`` / ``tools/call`` JSON-RPC methods.

Usage::

    from toolbridge.mcp import MCPDispatcher, default_registry

    registry = default_registry()
    dispatcher = MCPDispatcher(registry)
    response = await dispatcher.handle_body(b'{"jsonrpc": "2.0", ...}')
"""

from toolbridge.mcp.tools import (
    DuplicateToolError,
    RegistryFrozenError,
    Tool,
    ToolParameter,
    ToolRegistry,
    error_content,
    text_content,
)
from toolbridge.mcp.builtin import BUILTIN_TOOLS, default_registry
from toolbridge.mcp.server import MCPDispatcher

__all__ = [
    "BUILTIN_TOOLS",
    "DuplicateToolError",
    "MCPDispatcher",
    "RegistryFrozenError",
    "Tool",
    "ToolParameter",
    "ToolRegistry",
    "default_registry",
    "error_content",
    "text_content",
]
