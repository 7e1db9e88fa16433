"""Configuration management."""

from .settings import (
    ServerConfig,
    Settings,
    build_server_config,
    get_settings,
    load_settings,
    normalize_redact_prefixes,
    normalize_url_prefix,
)

__all__ = [
    "ServerConfig",
    "Settings",
    "build_server_config",
    "get_settings",
    "load_settings",
    "normalize_redact_prefixes",
    "normalize_url_prefix",
]
