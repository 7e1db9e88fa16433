"""FastAPI application for the sensillum diagnostic server."""

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from sensillum import __version__, build_info
from sensillum.core.config import ServerConfig
from sensillum.core.exceptions import SensillumError
from sensillum.core.server_info import server_info_from_scope
from sensillum.core.tracker import ConnectionTracker, report_peak_connections
from sensillum.probes import load_waf_catalogue
from sensillum.web.dispatch import HEALTH_PATH, PrefixMiddleware
from sensillum.web.routers import probes, sessions
from sensillum.web.routing import any_method_route, get_config

logger = logging.getLogger(__name__)

# Get paths
BASE_DIR = Path(__file__).parent
TEMPLATES_DIR = BASE_DIR / "templates"

templates = Jinja2Templates(directory=TEMPLATES_DIR)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


async def health_check(request: Request) -> Response:  # noqa: ARG001
    """Health check endpoint."""
    return PlainTextResponse("OK")


async def index(request: Request) -> Response:
    """Diagnostic page with the request snapshot embedded."""
    config = get_config(request)
    info = server_info_from_scope(request.scope, config)
    return templates.TemplateResponse(
        request=request,
        name="index.html",
        context={
            "server_info": info.to_payload(),
            "version": build_info.version(),
            "build_time": build_info.build_time(),
            "privacy_mode": config.privacy_mode,
            "waf_payloads": sorted(load_waf_catalogue()),
        },
        headers=NO_CACHE_HEADERS,
    )


def create_app(
    config: ServerConfig | None = None, tracker: ConnectionTracker | None = None
) -> FastAPI:
    """Build the application around a configuration and connection tracker.

    The tracker is the same instance the server's protocol classes count
    connections with; the application only runs its periodic peak report.
    """
    config = config or ServerConfig()
    tracker = tracker or ConnectionTracker()

    @asynccontextmanager
    async def lifespan(app: FastAPI):  # noqa: ARG001
        """Manage application lifecycle."""
        logger.info(f"Starting sensillum {build_info.full_version()}")
        reporter = asyncio.create_task(
            report_peak_connections(tracker, config.peak_report_interval)
        )
        yield
        reporter.cancel()
        logger.info("Shutting down sensillum...")

    app = FastAPI(
        title="Sensillum",
        description="Protocol diagnostics for reverse proxies, load balancers and WAFs",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.config = config
    app.state.tracker = tracker

    app.add_middleware(PrefixMiddleware, prefix=config.url_prefix)

    # Every endpoint answers any method; intermediaries are probed with all of them
    app.router.routes.extend(
        [
            *sessions.routes,
            *probes.routes,
            any_method_route(HEALTH_PATH, health_check),
            any_method_route("/", index),
        ]
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return PlainTextResponse(
            str(exc.detail), status_code=exc.status_code, headers=exc.headers
        )

    @app.exception_handler(SensillumError)
    async def sensillum_error_handler(request: Request, exc: SensillumError):
        logger.error(
            f"Failed to build response for {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        return PlainTextResponse("Internal Server Error", status_code=500)

    @app.exception_handler(Exception)
    async def internal_error_handler(request: Request, exc: Exception):
        # The server re-raises after this response and logs the traceback itself
        logger.error(
            f"Unexpected error for {request.method} {request.url.path}: {exc!r}"
        )
        return PlainTextResponse("Internal Server Error", status_code=500)

    return app
