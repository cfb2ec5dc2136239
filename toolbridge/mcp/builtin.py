"""Built-in tools shipped with toolbridge.

``echo`` is the reference tool used for smoke-testing the transport.
``calculator`` shows how business errors (bad operation, division by
zero) are reported through the ``isError`` envelope instead of raising.
"""

from __future__ import annotations

from typing import Any

from toolbridge.mcp.tools import (
    Tool,
    ToolParameter,
    ToolRegistry,
    error_content,
    text_content,
)


def _echo(arguments: dict[str, Any]) -> dict[str, Any]:
    text = arguments.get("text", "")
    return text_content(f"Echo: {text}")


ECHO_TOOL = Tool(
    name="echo",
    description="Echoes back the input text",
    parameters=(
        ToolParameter("text", "string", "Text to echo back", required=True),
    ),
    handler=_echo,
)


_OPERATIONS = {
    "add": lambda a, b: a + b,
    "subtract": lambda a, b: a - b,
    "multiply": lambda a, b: a * b,
    "divide": lambda a, b: a / b,
}


def _as_number(value: Any) -> float | int | None:
    # bool is an int subclass but never a valid operand
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _format_number(value: float | int) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _calculate(arguments: dict[str, Any]) -> dict[str, Any]:
    operation = str(arguments.get("operation", "add")).lower()
    a = _as_number(arguments.get("a", 0))
    b = _as_number(arguments.get("b", 0))

    if a is None or b is None:
        return error_content("Operands 'a' and 'b' must be numbers")

    func = _OPERATIONS.get(operation)
    if func is None:
        return error_content(
            f"Unknown operation: {operation}. "
            f"Available: {', '.join(_OPERATIONS)}"
        )
    if operation == "divide" and b == 0:
        return error_content("Division by zero")

    result = func(a, b)
    return text_content(_format_number(result))


CALCULATOR_TOOL = Tool(
    name="calculator",
    description="Performs basic arithmetic: add, subtract, multiply, divide",
    parameters=(
        ToolParameter("a", "number", "First operand", required=True),
        ToolParameter("b", "number", "Second operand", required=True),
        ToolParameter(
            "operation",
            "string",
            "One of add, subtract, multiply, divide",
            required=True,
        ),
    ),
    handler=_calculate,
)


BUILTIN_TOOLS: list[Tool] = [ECHO_TOOL, CALCULATOR_TOOL]


def default_registry() -> ToolRegistry:
    """Fresh, unfrozen registry holding the built-in tools."""
    return ToolRegistry(BUILTIN_TOOLS)
