"""Server-info snapshots describing one observed request or connection.

The snapshot is what every diagnostic endpoint sends back to the client: the
headers as the server saw them (after any intermediary), the addresses of both
ends, and enough server identity for a client to tell backends apart. What is
echoed is governed only by configuration: header names matching a redaction
prefix are replaced by a marker, and privacy mode hides server-identifying
fields.
"""

import hashlib
from collections.abc import Iterable
from typing import Literal

from pydantic import BaseModel

from sensillum import build_info
from sensillum.core.config import ServerConfig

# Binary header values longer than this are reported without their bytes
MAX_BINARY_ECHO_BYTES = 16

FINGERPRINT_BYTES = 16

HTTP_PROTOCOL_LABELS = {
    "1.0": "HTTP/1.0",
    "1.1": "HTTP/1.1",
    "2": "HTTP/2.0",
    "2.0": "HTTP/2.0",
}


class RedactedHeader(BaseModel):
    """Marker replacing the value of a redacted header."""

    redacted: Literal[True] = True


class BinaryHeader(BaseModel):
    """Marker for a header value that is not valid header text."""

    binary: Literal[True] = True
    data: list[int] | None = None


HeaderValue = str | RedactedHeader | BinaryHeader


class ServerInfo(BaseModel):
    """Snapshot of one observed request.

    Optional fields left as None are omitted from the serialized payload.
    """

    client_addr: str
    protocol: str
    version: str
    headers: dict[str, HeaderValue]

    # Hidden in privacy mode
    server_addr: str | None = None
    hostname: str | None = None
    hostname_hash: list[int] | None = None
    build_time: str | None = None
    url_prefix: str | None = None

    # Present whenever a node name is configured
    node_name: str | None = None
    node_name_hash: list[int] | None = None

    # Echo additions
    path: str | None = None
    query: str | None = None

    # WebSocket additions
    type: str | None = None
    origin_mismatch: bool | None = None

    def to_payload(self) -> dict:
        """Serialize to a JSON-ready dict without unset optional fields."""
        return self.model_dump(exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def fingerprint(value: str) -> list[int]:
    """Opaque identifier for a hostname or node name.

    First 16 bytes of the SHA-256 digest of the UTF-8 encoded value.
    """
    digest = hashlib.sha256(value.encode("utf-8")).digest()
    return list(digest[:FINGERPRINT_BYTES])


def format_address(address: tuple[str, int] | list | None) -> str:
    """Format an ASGI (host, port) pair the way socket addresses print."""
    if not address:
        return "unknown"
    host, port = address[0], address[1]
    if ":" in str(host):
        return f"[{host}]:{port}"
    return f"{host}:{port}"


def protocol_label(http_version: str | None) -> str:
    """Map an ASGI ``http_version`` to a protocol label such as "HTTP/1.1"."""
    if not http_version:
        return "HTTP/1.1"
    return HTTP_PROTOCOL_LABELS.get(http_version, f"HTTP/{http_version}")


def decode_header_text(value: bytes) -> str | None:
    """Return the value as text if it only holds visible ASCII, space or tab."""
    for byte in value:
        if byte != 0x09 and not 0x20 <= byte <= 0x7E:
            return None
    return value.decode("ascii")


def is_redacted(name: str, redact_prefixes: Iterable[str]) -> bool:
    return any(name.startswith(prefix) for prefix in redact_prefixes)


def describe_headers(
    raw_headers: Iterable[tuple[bytes, bytes]], redact_prefixes: tuple[str, ...]
) -> dict[str, HeaderValue]:
    """Build the header map of a snapshot from raw header pairs.

    Headers keep their original order; a repeated name keeps its first
    position and its last value.
    """
    headers: dict[str, HeaderValue] = {}
    for raw_name, raw_value in raw_headers:
        name = raw_name.decode("latin-1").lower()
        if is_redacted(name, redact_prefixes):
            headers[name] = RedactedHeader()
            continue

        text = decode_header_text(raw_value)
        if text is not None:
            headers[name] = text
        elif len(raw_value) <= MAX_BINARY_ECHO_BYTES:
            headers[name] = BinaryHeader(data=list(raw_value))
        else:
            headers[name] = BinaryHeader()
    return headers


def build_server_info(
    raw_headers: Iterable[tuple[bytes, bytes]],
    client_addr: str,
    server_addr: str,
    config: ServerConfig,
    protocol: str,
) -> ServerInfo:
    """Build the snapshot for one request.

    Args:
        raw_headers: Header (name, value) byte pairs in the order received
        client_addr: Formatted peer address
        server_addr: Formatted local address
        config: Shared server configuration
        protocol: Protocol label, e.g. "HTTP/1.1"

    Returns:
        ServerInfo honouring the redaction list and privacy mode
    """
    info = ServerInfo(
        client_addr=client_addr,
        protocol=protocol,
        version=build_info.version(),
        headers=describe_headers(raw_headers, config.redact_prefixes),
    )

    if not config.privacy_mode:
        info.server_addr = server_addr
        info.hostname = config.hostname
        info.hostname_hash = fingerprint(config.hostname)
        info.build_time = build_info.build_time()
        info.url_prefix = config.url_prefix or ""

    if config.node_name:
        info.node_name = config.node_name
        info.node_name_hash = fingerprint(config.node_name)

    return info


def server_info_from_scope(scope: dict, config: ServerConfig) -> ServerInfo:
    """Build the snapshot for an ASGI HTTP or WebSocket scope."""
    return build_server_info(
        scope.get("headers", []),
        format_address(scope.get("client")),
        format_address(scope.get("server")),
        config,
        protocol_label(scope.get("http_version")),
    )


class NodeIdentity(BaseModel):
    """Which backend answered; used to detect load balancing."""

    node_name: str | None = None
    node_name_hash: list[int] | None = None
    hostname: str | None = None
    hostname_hash: list[int] | None = None

    def to_payload(self) -> dict:
        return self.model_dump(exclude_none=True)


def build_node_identity(config: ServerConfig) -> NodeIdentity:
    """Node identity under the same privacy rules as the snapshot."""
    identity = NodeIdentity()
    if config.node_name:
        identity.node_name = config.node_name
        identity.node_name_hash = fingerprint(config.node_name)
    if not config.privacy_mode:
        identity.hostname = config.hostname
        identity.hostname_hash = fingerprint(config.hostname)
    return identity
