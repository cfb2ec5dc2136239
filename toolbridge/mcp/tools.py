"""Tool definitions and the tool registry.

A tool is a plain value record: a name, a description, an ordered
parameter list, and a handler callable.  The registry maps names to
tools and is populated once at startup, then frozen before the
listener starts accepting connections, so lookups from concurrent
sessions need no locking.

Handlers never raise for business errors.  They return the uniform
result envelope::

    {"content": [{"type": "text", "text": "..."}], "isError": True}

built with ``text_content`` / ``error_content``.  Anything a handler
does raise is treated by the dispatcher as an internal error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result envelopes
# ---------------------------------------------------------------------------


def text_content(text: str) -> dict[str, Any]:
    """Successful tool result carrying a single text block."""
    return {"content": [{"type": "text", "text": text}]}


def error_content(message: str) -> dict[str, Any]:
    """Business-level failure reported inside the result, not as an RPC error."""
    return {
        "content": [{"type": "text", "text": f"Error: {message}"}],
        "isError": True,
    }


# ---------------------------------------------------------------------------
# Tool record
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ToolParameter:
    """One entry of a tool's input schema."""
    name: str
    type: str
    description: str = ""
    required: bool = False


@dataclass(frozen=True)
class Tool:
    """MCP tool: schema plus the callable that does the work."""
    name: str
    description: str
    parameters: tuple[ToolParameter, ...] = ()
    handler: Callable[..., Any] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tool has no name")
        if self.handler is None:
            raise ValueError(f"Tool {self.name!r} has no handler")
        # Accept lists from callers but keep the record immutable.
        object.__setattr__(self, "parameters", tuple(self.parameters))

    @property
    def required(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def input_schema(self) -> dict[str, Any]:
        properties = {
            p.name: {"type": p.type, "description": p.description}
            for p in self.parameters
        }
        return {
            "type": "object",
            "properties": properties,
            "required": self.required,
        }

    def schema(self) -> dict[str, Any]:
        """Entry for a tools/list response."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema(),
        }

    def execute(self, arguments: dict[str, Any]) -> Any:
        """Run the handler.  May return an awaitable for async handlers."""
        return self.handler(arguments)


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class DuplicateToolError(ValueError):
    """A tool with the same name is already registered."""


class RegistryFrozenError(RuntimeError):
    """Registration attempted after the registry was frozen for serving."""


class ToolRegistry:
    """Name → Tool mapping with an explicit registration phase."""

    def __init__(self, tools: Iterable[Tool] = ()) -> None:
        self._tools: dict[str, Tool] = {}
        self._frozen = False
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> Tool:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {tool.name!r}: registry is frozen"
            )
        if tool.name in self._tools:
            raise DuplicateToolError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        logger.info("Registered tool: %s", tool.name)
        return tool

    def freeze(self) -> None:
        """End the registration phase.  Idempotent."""
        if not self._frozen:
            logger.debug("Tool registry frozen with %d tool(s)", len(self._tools))
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def list_tools(self) -> list[Tool]:
        return list(self._tools.values())

    def list_schemas(self) -> list[dict[str, Any]]:
        return [tool.schema() for tool in self._tools.values()]

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self.list_tools())
