"""WebSocket handshake checks and the heartbeat session.

The handshake is never refused because of an origin mismatch: the session
opens anyway and the mismatch is reported to the client, with the request
headers withheld from the snapshot. The server observes origin pass-through,
it does not enforce it.
"""

import asyncio
import base64
import hashlib
import logging
from collections.abc import Mapping
from dataclasses import dataclass

from starlette.websockets import WebSocket, WebSocketDisconnect

from sensillum.core.exceptions import HandshakeError
from sensillum.core.server_info import ServerInfo

logger = logging.getLogger(__name__)

WEBSOCKET_GUID = "258EAFA5-E914-47DA-95CA-C5AB0DC85B11"

ORIGIN_SCHEMES = ("http://", "https://", "ws://", "wss://")


@dataclass(frozen=True)
class Handshake:
    """Outcome of a successful handshake check."""

    accept_key: str
    origin_mismatch: bool


def derive_accept_key(key: str) -> str:
    """Sec-WebSocket-Accept value for a client's Sec-WebSocket-Key (RFC 6455)."""
    digest = hashlib.sha1((key + WEBSOCKET_GUID).encode("latin-1")).digest()
    return base64.b64encode(digest).decode("ascii")


def origin_host(origin: str) -> str:
    """Strip the URI scheme from an Origin value, leaving host[:port]."""
    lowered = origin.lower()
    for scheme in ORIGIN_SCHEMES:
        if lowered.startswith(scheme):
            return origin[len(scheme) :]
    return origin


def is_origin_mismatch(origin: str | None, host: str | None) -> bool:
    """Whether the Origin header names a different host than the Host header.

    Requests without an Origin come from non-browser clients and count as
    same-origin. An Origin without a Host can't be matched and counts as a
    mismatch.
    """
    if origin is None:
        return False
    if host is None:
        return True
    return origin_host(origin).rstrip("/").lower() != host.lower()


def check_handshake(method: str, headers: Mapping[str, str]) -> Handshake:
    """Validate a WebSocket upgrade request.

    Args:
        method: HTTP method of the request
        headers: Case-insensitive request headers

    Returns:
        Handshake with the accept token and the origin check result

    Raises:
        HandshakeError: If the method or Upgrade header is wrong.
    """
    if method.upper() != "GET":
        raise HandshakeError(f"WebSocket upgrade requires GET, got {method}")

    upgrade = headers.get("upgrade", "")
    if upgrade.lower() != "websocket":
        raise HandshakeError("Expected WebSocket upgrade")

    return inspect_handshake(headers)


def inspect_handshake(headers: Mapping[str, str]) -> Handshake:
    """Accept token and origin check for an upgrade the transport already accepted.

    The Sec-WebSocket-Accept header on the wire is written by the WebSocket
    protocol implementation (wsproto), which derives it the same way; the token
    computed here goes into the session log so both can be compared.
    """
    return Handshake(
        accept_key=derive_accept_key(headers.get("sec-websocket-key", "")),
        origin_mismatch=is_origin_mismatch(headers.get("origin"), headers.get("host")),
    )


def session_greeting(info: ServerInfo, origin_mismatch: bool) -> ServerInfo:
    """First message of a session: the snapshot tagged as "headers".

    On an origin mismatch the request headers are withheld.
    """
    update: dict = {"type": "headers"}
    if origin_mismatch:
        update["headers"] = {}
        update["origin_mismatch"] = True
    return info.model_copy(update=update)


def heartbeat_message(count: int) -> str:
    return f"Heartbeat #{count}"


async def run_websocket_session(
    websocket: WebSocket, greeting: ServerInfo, interval: float
) -> None:
    """Drive an accepted WebSocket until the peer closes it or the transport fails.

    Sends the greeting, then a heartbeat immediately and every ``interval``
    seconds, while reading incoming frames. Whichever of the next tick or the
    next frame comes first is handled; neither blocks the other.
    """
    client = greeting.client_addr
    loop = asyncio.get_running_loop()

    receive_task: asyncio.Task | None = None
    tick_task: asyncio.Task | None = None
    try:
        await websocket.send_text(greeting.to_json())

        count = 0
        next_tick = loop.time()
        receive_task = asyncio.ensure_future(websocket.receive())
        tick_task = asyncio.ensure_future(asyncio.sleep(0))

        while True:
            done, _ = await asyncio.wait(
                {receive_task, tick_task}, return_when=asyncio.FIRST_COMPLETED
            )

            if receive_task in done:
                message = receive_task.result()
                if message["type"] == "websocket.disconnect":
                    logger.info(
                        f"WebSocket client {client} closed the session "
                        f"(code {message.get('code', 1000)})"
                    )
                    return
                receive_task = asyncio.ensure_future(websocket.receive())

            if tick_task in done:
                await websocket.send_text(heartbeat_message(count))
                count += 1
                next_tick += interval
                tick_task = asyncio.ensure_future(
                    asyncio.sleep(max(next_tick - loop.time(), 0))
                )
    except (WebSocketDisconnect, OSError, RuntimeError) as e:
        logger.warning(f"WebSocket session with {client} ended: {e!r}")
    finally:
        for task in (receive_task, tick_task):
            if task is not None and not task.done():
                task.cancel()
        logger.info(f"WebSocket connection closed: {client}")
