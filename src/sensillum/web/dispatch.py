"""URL prefix handling in front of the router.

When sensillum is published under a path prefix (``/api`` behind a proxy that
does not rewrite paths), every route lives under that prefix. The health check
is reachable with and without it.
"""

import logging

from starlette.types import ASGIApp, Receive, Scope, Send

logger = logging.getLogger(__name__)

HEALTH_PATH = "/healthz"

# Matches no route; requests outside the prefix end up here and get a 404
UNROUTABLE_PATH = "/.sensillum/outside-prefix"


def resolve_path(path: str, prefix: str | None) -> str:
    """Strip ``prefix`` from ``path``.

    Returns the path to route on: the path itself when no prefix is
    configured or for the health check, "/" for the bare prefix, and
    ``UNROUTABLE_PATH`` when the path lies outside the prefix.
    """
    if path == HEALTH_PATH or not prefix:
        return path
    if path == prefix:
        return "/"
    if path.startswith(prefix + "/"):
        return path[len(prefix) :]
    return UNROUTABLE_PATH


class PrefixMiddleware:
    """ASGI middleware rewriting the request path before routing."""

    def __init__(self, app: ASGIApp, prefix: str | None = None) -> None:
        self.app = app
        self.prefix = prefix

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket") or not self.prefix:
            await self.app(scope, receive, send)
            return

        scope = dict(scope)
        original = scope["path"]
        scope["path"] = resolve_path(original, self.prefix)

        raw_path = scope.get("raw_path")
        if raw_path:
            resolved = resolve_path(raw_path.decode("latin-1"), self.prefix)
            scope["raw_path"] = resolved.encode("latin-1")

        if scope["path"] == UNROUTABLE_PATH:
            logger.debug(f"Path {original!r} is outside prefix {self.prefix!r}")

        await self.app(scope, receive, send)
