"""HTTP front end: request framing, sessions, SSE and the listener."""

from toolbridge.http.listener import Listener
from toolbridge.http.parser import (
    BodyPhase,
    Connection,
    ConnectionClosedError,
    HeaderPhase,
    HttpParseError,
    ParsedRequest,
)
from toolbridge.http.session import Session, SessionState

__all__ = [
    "BodyPhase",
    "Connection",
    "ConnectionClosedError",
    "HeaderPhase",
    "HttpParseError",
    "Listener",
    "ParsedRequest",
    "Session",
    "SessionState",
]
