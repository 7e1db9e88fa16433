"""uvicorn server runner with per-connection tracking.

Connections are counted at the transport level, not per request: a keep-alive
connection carrying many requests, or one long WebSocket session, is one
connection. uvicorn's HTTP and WebSocket protocol classes are subclassed so
that ``connection_made`` takes a lease from the tracker and
``connection_lost`` always returns it.
"""

import asyncio
import logging
from typing import Any

import uvicorn
from uvicorn.protocols.http.h11_impl import H11Protocol
from uvicorn.protocols.websockets.wsproto_impl import WSProtocol

from sensillum.core.config import ServerConfig
from sensillum.core.tracker import ConnectionLease, ConnectionTracker
from sensillum.web.app import create_app

logger = logging.getLogger(__name__)


class TrackedConnectionMixin:
    """Counts the connection served by an asyncio protocol instance."""

    tracker: ConnectionTracker
    _lease: ConnectionLease | None = None

    def connection_made(self, transport: asyncio.BaseTransport) -> None:
        self._lease = self.tracker.claim(transport)
        logger.debug(
            f"Connection opened from {transport.get_extra_info('peername')} "
            f"(active: {self.tracker.active})"
        )
        super().connection_made(transport)  # type: ignore[misc]

    def connection_lost(self, exc: Exception | None) -> None:
        try:
            super().connection_lost(exc)  # type: ignore[misc]
        finally:
            if self._lease is not None:
                self._lease.release()
                self._lease = None
            logger.debug(f"Connection closed (active: {self.tracker.active})")


class TrackedUpgradeMixin(TrackedConnectionMixin):
    """HTTP protocol whose connection may switch to WebSocket.

    On upgrade the transport moves to a new WebSocket protocol instance and
    this one never sees ``connection_lost``, so the lease moves with it.
    """

    transport: asyncio.Transport

    def handle_websocket_upgrade(self, *args: Any, **kwargs: Any) -> None:
        if self._lease is not None:
            self.tracker.hand_off(self.transport, self._lease)
            self._lease = None
        super().handle_websocket_upgrade(*args, **kwargs)  # type: ignore[misc]


def tracked_http_protocol(
    protocol_class: type[asyncio.Protocol], tracker: ConnectionTracker
) -> type[asyncio.Protocol]:
    """Subclass an HTTP protocol class so it counts connections in ``tracker``."""
    return type(
        f"Tracked{protocol_class.__name__}",
        (TrackedUpgradeMixin, protocol_class),
        {"tracker": tracker},
    )


def tracked_ws_protocol(
    protocol_class: type[asyncio.Protocol], tracker: ConnectionTracker
) -> type[asyncio.Protocol]:
    """Subclass a WebSocket protocol class so it counts connections in ``tracker``."""
    return type(
        f"Tracked{protocol_class.__name__}",
        (TrackedConnectionMixin, protocol_class),
        {"tracker": tracker},
    )


def build_uvicorn_config(
    config: ServerConfig,
    tracker: ConnectionTracker,
    *,
    access_log: bool = False,
) -> uvicorn.Config:
    """uvicorn configuration serving the sensillum app with connection tracking."""
    return uvicorn.Config(
        create_app(config, tracker),
        host=config.host,
        port=config.port,
        http=tracked_http_protocol(H11Protocol, tracker),
        ws=tracked_ws_protocol(WSProtocol, tracker),
        # Report the real peer, not what X-Forwarded-For claims
        proxy_headers=False,
        server_header=False,
        h11_max_incomplete_event_size=config.max_header_bytes,
        access_log=access_log,
        log_config=None,
    )


def run_server(
    config: ServerConfig,
    tracker: ConnectionTracker | None = None,
    *,
    access_log: bool = False,
) -> None:
    """Serve until interrupted."""
    tracker = tracker or ConnectionTracker()
    server = uvicorn.Server(build_uvicorn_config(config, tracker, access_log=access_log))
    logger.info(f"Server bound to: {config.host}:{config.port}")
    server.run()
