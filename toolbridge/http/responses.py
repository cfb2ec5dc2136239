"""Raw HTTP/1.1 responses written by a session.

Transport-level failures (400, 404) are bare status lines with an empty
body.  JSON-RPC replies are always 200; protocol errors live in the body.
"""

from __future__ import annotations

STATUS_MESSAGES = {
    200: "OK",
    204: "No Content",
    400: "Bad Request",
    404: "Not Found",
    500: "Internal Server Error",
}

CORS_HEADERS = [
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Methods", "POST, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type"),
]


def build_response(
    status: int,
    headers: list[tuple[str, str]],
    body: bytes = b"",
) -> bytes:
    """Serialize a status line, headers and body."""
    reason = STATUS_MESSAGES.get(status, "Unknown")
    lines = [f"HTTP/1.1 {status} {reason}"]
    lines.extend(f"{name}: {value}" for name, value in headers)
    lines.extend(["", ""])
    return "\r\n".join(lines).encode("latin-1") + body


def rpc_response(payload: bytes) -> bytes:
    """200 carrying a JSON-RPC response object."""
    headers = [
        ("Content-Type", "application/json"),
        ("Content-Length", str(len(payload))),
        *CORS_HEADERS,
        ("Connection", "close"),
    ]
    return build_response(200, headers, payload)


def preflight_response() -> bytes:
    """204 reply to a CORS preflight."""
    return build_response(204, [*CORS_HEADERS, ("Connection", "close")])


def empty_response(status: int) -> bytes:
    """Bare status with no body (400, 404)."""
    return build_response(
        status, [("Content-Length", "0"), ("Connection", "close")]
    )


def sse_head() -> bytes:
    return build_response(
        200,
        [
            ("Content-Type", "text/event-stream"),
            ("Cache-Control", "no-cache"),
            ("Connection", "keep-alive"),
            ("Access-Control-Allow-Origin", "*"),
        ],
    )
