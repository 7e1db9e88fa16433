"""Route helpers shared by the routers."""

from collections.abc import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response
from starlette.routing import Route, request_response
from starlette.types import Receive, Scope, Send

from sensillum.core.config import ServerConfig

RequestHandler = Callable[[Request], Awaitable[Response]]


class AnyMethodEndpoint:
    """ASGI endpoint running a request handler whatever the HTTP method.

    Starlette limits a plain function endpoint to GET when no methods are
    listed. Wrapped as an ASGI app the route matches on path alone, so TRACE,
    PURGE or WebDAV verbs reach the handler like any other method.
    """

    def __init__(self, handler: RequestHandler):
        self.__name__ = handler.__name__
        self._app = request_response(handler)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self._app(scope, receive, send)


def any_method_route(path: str, handler: RequestHandler) -> Route:
    """Route for ``path`` that answers every method."""
    return Route(path, AnyMethodEndpoint(handler))


def get_config(request: Request) -> ServerConfig:
    """Server configuration attached to the application."""
    return request.app.state.config
