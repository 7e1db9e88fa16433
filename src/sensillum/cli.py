"""Command-line interface for sensillum."""

import logging

import click
from pydantic import ValidationError

from sensillum import __version__, build_info
from sensillum.core.config import build_server_config, get_settings
from sensillum.core.tracker import ConnectionTracker
from sensillum.server import run_server

BANNER = r"""
   _____ _______   __________  __    __    __  ____  ___
  / ___// ____/ | / / ___/  _/ /   / /   / / / /  |/  /
  \__ \/ __/ /  |/ /\__ \ / // /   / /   / / / / /|_/ /
 ___/ / /___/ /|  /___/ // // /___/ /___/ /_/ / /  / /
/____/_____/_/ |_//____/___/_____/_____/\____/_/  /_/
"""


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


@click.group()
@click.version_option(version=__version__, prog_name="sensillum")
def cli() -> None:
    """Sensillum - see what your proxy does to HTTP, WebSocket and SSE traffic"""
    pass


@cli.command()
def info() -> None:
    """Show version and build information."""
    click.echo(f"sensillum {build_info.full_version()}")


@cli.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--host", help="Address to bind (overrides SENSILLUM_HOST)")
@click.option(
    "--port", "-p", type=int, help="Port to listen on (overrides SENSILLUM_PORT)"
)
@click.option(
    "--node", "-n", help="Node name for load-balancer detection (overrides SENSILLUM_NODE)"
)
@click.option(
    "--prefix",
    "-x",
    help="URL prefix when published under a sub-path, e.g. /api (overrides SENSILLUM_PREFIX)",
)
@click.option(
    "--redact",
    "-r",
    multiple=True,
    help="Header-name prefix whose values are never echoed; repeatable "
    "(overrides SENSILLUM_REDACT_HEADERS)",
)
@click.option(
    "--privacy/--no-privacy",
    default=None,
    help="Hide server address, hostname, build time and URL prefix from clients "
    "(overrides SENSILLUM_PRIVACY_MODE)",
)
@click.option(
    "--heartbeat-interval",
    type=click.FloatRange(min=0, min_open=True),
    help="Seconds between WebSocket/SSE heartbeats (overrides SENSILLUM_HEARTBEAT_INTERVAL)",
)
@click.option("--log-level", help="Log level (overrides LOG_LEVEL)")
@click.option(
    "--access-log/--no-access-log",
    default=None,
    help="Log every request (overrides SENSILLUM_ACCESS_LOG)",
)
def serve(
    host: str | None,
    port: int | None,
    node: str | None,
    prefix: str | None,
    redact: tuple[str, ...],
    privacy: bool | None,
    heartbeat_interval: float | None,
    log_level: str | None,
    access_log: bool | None,
) -> None:
    """Start the diagnostic server.

    Settings come from environment variables (and .env); command-line options
    take precedence.

    Examples:
        sensillum serve --port 8080 --node web-1
        sensillum serve --prefix /diag --privacy
        SENSILLUM_REDACT_HEADERS=authorization,x-api- sensillum serve
    """
    try:
        settings = get_settings()
    except ValidationError as e:
        raise click.ClickException(f"Invalid configuration: {e}") from e

    app_settings = settings.application
    configure_logging(log_level or app_settings.log_level)

    try:
        config = build_server_config(
            settings.server,
            host=host,
            port=port,
            node_name=node,
            url_prefix=prefix,
            redact=redact,
            privacy_mode=privacy,
            heartbeat_interval=heartbeat_interval,
        )
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--prefix'") from e

    click.echo(BANNER)
    click.echo(f"Sensillum {build_info.full_version()}\n")
    if config.privacy_mode:
        click.echo(
            "Privacy mode enabled: server_addr, hostname, build_time and url_prefix "
            "will not be sent to clients."
        )
    if config.url_prefix:
        click.echo(f"Serving under URL prefix {config.url_prefix}")
    if config.redact_prefixes:
        click.echo(f"Redacting headers starting with: {', '.join(config.redact_prefixes)}")

    run_server(
        config,
        ConnectionTracker(),
        access_log=access_log if access_log is not None else app_settings.access_log,
    )


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
