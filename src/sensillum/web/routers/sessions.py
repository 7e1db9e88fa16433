"""WebSocket and Server-Sent Events session endpoints."""

import logging

from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response, StreamingResponse
from starlette.routing import WebSocketRoute
from starlette.websockets import WebSocket

from sensillum.core.config import ServerConfig
from sensillum.core.exceptions import HandshakeError
from sensillum.core.server_info import format_address, server_info_from_scope
from sensillum.sessions import (
    SSE_HEADERS,
    check_handshake,
    inspect_handshake,
    run_websocket_session,
    session_greeting,
    sse_events,
)
from sensillum.web.routing import any_method_route, get_config

logger = logging.getLogger(__name__)


async def websocket_session(websocket: WebSocket) -> None:
    """Upgraded WebSocket: snapshot first, then heartbeats."""
    config: ServerConfig = websocket.app.state.config
    handshake = inspect_handshake(websocket.headers)
    info = server_info_from_scope(websocket.scope, config)

    await websocket.accept()
    logger.info(
        f"WebSocket client connected from {info.client_addr} to "
        f"{format_address(websocket.scope.get('server'))} via {info.protocol}"
        + (" (origin mismatch)" if handshake.origin_mismatch else "")
    )
    logger.debug(f"Sec-WebSocket-Accept for {info.client_addr}: {handshake.accept_key}")

    await run_websocket_session(
        websocket,
        session_greeting(info, handshake.origin_mismatch),
        config.heartbeat_interval,
    )


async def websocket_over_http(request: Request) -> Response:
    """A request for /ws that the server did not upgrade."""
    try:
        check_handshake(request.method, request.headers)
    except HandshakeError as e:
        return PlainTextResponse(str(e), status_code=e.status_code)

    return PlainTextResponse(
        "WebSocket upgrade was not performed on this connection",
        status_code=426,
        headers={"Upgrade": "websocket", "Connection": "Upgrade"},
    )


async def sse_session(request: Request) -> Response:
    """Server-Sent Events stream: snapshot event, then heartbeats."""
    config = get_config(request)
    info = server_info_from_scope(request.scope, config)
    return StreamingResponse(
        sse_events(info, config.heartbeat_interval),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


routes = [
    WebSocketRoute("/ws", websocket_session),
    any_method_route("/ws", websocket_over_http),
    any_method_route("/sse", sse_session),
]
