"""Long-lived diagnostic sessions: WebSocket heartbeats and SSE streams."""

from .sse import SSE_HEADERS, format_event, sse_events
from .websocket import (
    Handshake,
    check_handshake,
    derive_accept_key,
    heartbeat_message,
    inspect_handshake,
    is_origin_mismatch,
    run_websocket_session,
    session_greeting,
)

__all__ = [
    "SSE_HEADERS",
    "Handshake",
    "check_handshake",
    "derive_accept_key",
    "format_event",
    "heartbeat_message",
    "inspect_handshake",
    "is_origin_mismatch",
    "run_websocket_session",
    "session_greeting",
    "sse_events",
]
