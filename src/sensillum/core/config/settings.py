"""
Application configuration management.

Settings are loaded from environment variables and an optional ``.env`` file,
then merged with command-line overrides into the immutable ``ServerConfig``
record that every connection shares.
"""

import socket
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_PORT = 3030
DEFAULT_REDACT_HEADERS = "authorization,proxy-authorization"


def normalize_url_prefix(prefix: str | None) -> str | None:
    """Normalize a URL prefix: drop trailing slashes, require a leading one.

    Returns None when the prefix is empty.

    Raises:
        ValueError: If a non-empty prefix does not start with "/".
    """
    if prefix is None:
        return None
    prefix = prefix.strip().rstrip("/")
    if not prefix:
        return None
    if not prefix.startswith("/"):
        raise ValueError(f"URL prefix must start with /: {prefix!r}")
    return prefix


def normalize_redact_prefixes(values: Iterable[str]) -> tuple[str, ...]:
    """Lower-case and de-duplicate header-name prefixes, keeping order."""
    seen: dict[str, None] = {}
    for value in values:
        for item in value.split(","):
            item = item.strip().lower()
            if item:
                seen.setdefault(item, None)
    return tuple(seen)


@dataclass(frozen=True)
class ServerConfig:
    """Immutable server configuration shared by every connection."""

    host: str = "0.0.0.0"
    port: int = DEFAULT_PORT
    hostname: str = "unknown"
    node_name: str | None = None
    url_prefix: str | None = None
    redact_prefixes: tuple[str, ...] = ()
    privacy_mode: bool = False

    heartbeat_interval: float = 5.0  # seconds
    peak_report_interval: float = 60.0  # seconds
    max_header_bytes: int = 1024 * 1024  # 1MB

    def __post_init__(self) -> None:
        """Enforce the URL prefix and redaction list invariants."""
        object.__setattr__(self, "node_name", self.node_name or None)
        object.__setattr__(self, "url_prefix", normalize_url_prefix(self.url_prefix))
        object.__setattr__(
            self, "redact_prefixes", normalize_redact_prefixes(self.redact_prefixes)
        )


class ServerSettings(BaseSettings):
    """Diagnostic server configuration."""

    host: str = Field(default="0.0.0.0", alias="SENSILLUM_HOST")
    port: int = Field(default=DEFAULT_PORT, alias="SENSILLUM_PORT")
    node_name: str | None = Field(None, alias="SENSILLUM_NODE")
    url_prefix: str | None = Field(None, alias="SENSILLUM_PREFIX")
    privacy_mode: bool = Field(default=False, alias="SENSILLUM_PRIVACY_MODE")

    # Comma-separated header-name prefixes whose values are never echoed
    redact_headers: str = Field(
        default=DEFAULT_REDACT_HEADERS, alias="SENSILLUM_REDACT_HEADERS"
    )

    heartbeat_interval: float = Field(
        default=5.0, gt=0, alias="SENSILLUM_HEARTBEAT_INTERVAL"
    )
    peak_report_interval: float = Field(
        default=60.0, gt=0, alias="SENSILLUM_PEAK_REPORT_INTERVAL"
    )
    max_header_bytes: int = Field(
        default=1024 * 1024, gt=0, alias="SENSILLUM_MAX_HEADER_BYTES"
    )

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: Any) -> int:
        port = int(v)
        if not 0 < port < 65536:
            raise ValueError("SENSILLUM_PORT must be between 1 and 65535")
        return port

    @field_validator("url_prefix")
    @classmethod
    def validate_url_prefix(cls, v: Any) -> str | None:
        return normalize_url_prefix(v)

    @field_validator("node_name")
    @classmethod
    def validate_node_name(cls, v: Any) -> str | None:
        if v is None:
            return None
        return str(v).strip() or None

    @property
    def redact_prefixes(self) -> tuple[str, ...]:
        return normalize_redact_prefixes([self.redact_headers])

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class ApplicationSettings(BaseSettings):
    """Application configuration."""

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    access_log: bool = Field(default=False, alias="SENSILLUM_ACCESS_LOG")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: Any) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = str(v).upper()
        if v not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return str(v)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


class Settings(BaseSettings):
    """Main settings class that combines all configuration sections."""

    server: ServerSettings = Field(default_factory=ServerSettings)  # type: ignore[arg-type]
    application: ApplicationSettings = Field(default_factory=ApplicationSettings)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


def load_settings() -> Settings:
    """
    Load settings from environment variables and .env file.

    Returns:
        Settings: Configured settings instance
    """
    return Settings()


_settings: Settings | None = None


def get_settings() -> Settings:
    """
    Get cached settings instance (singleton pattern).

    Returns:
        Settings: Cached settings instance
    """
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def _resolve_hostname() -> str:
    try:
        return socket.gethostname() or "unknown"
    except OSError:
        return "unknown"


def build_server_config(
    settings: ServerSettings,
    *,
    host: str | None = None,
    port: int | None = None,
    node_name: str | None = None,
    url_prefix: str | None = None,
    redact: Iterable[str] | None = None,
    privacy_mode: bool | None = None,
    heartbeat_interval: float | None = None,
) -> ServerConfig:
    """Merge command-line overrides into the environment settings.

    Any override that is not None takes precedence over the environment.

    Raises:
        ValueError: If the resulting URL prefix is invalid.
    """
    redact_values = list(redact) if redact else []
    return ServerConfig(
        host=host if host is not None else settings.host,
        port=port if port is not None else settings.port,
        hostname=_resolve_hostname(),
        node_name=node_name if node_name is not None else settings.node_name,
        url_prefix=url_prefix if url_prefix is not None else settings.url_prefix,
        redact_prefixes=(
            normalize_redact_prefixes(redact_values)
            if redact_values
            else settings.redact_prefixes
        ),
        privacy_mode=(
            privacy_mode if privacy_mode is not None else settings.privacy_mode
        ),
        heartbeat_interval=(
            heartbeat_interval
            if heartbeat_interval is not None
            else settings.heartbeat_interval
        ),
        peak_report_interval=settings.peak_report_interval,
        max_header_bytes=settings.max_header_bytes,
    )
