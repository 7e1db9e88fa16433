"""Unit tests for server-info snapshots."""

import hashlib

import pytest

from sensillum import build_info
from sensillum.core.config import ServerConfig
from sensillum.core.server_info import (
    BinaryHeader,
    RedactedHeader,
    build_node_identity,
    build_server_info,
    decode_header_text,
    fingerprint,
    format_address,
    protocol_label,
    server_info_from_scope,
)

PRIVACY_FIELDS = ("server_addr", "hostname", "hostname_hash", "build_time", "url_prefix")


def _build(headers, config, protocol="HTTP/1.1"):
    return build_server_info(headers, "10.0.0.1:5000", "10.0.0.2:3030", config, protocol)


class TestRedaction:
    """Test header redaction by name prefix."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "name,value",
        [
            (b"authorization", b"Bearer secret-token"),
            (b"Authorization", b"Basic dXNlcjpwYXNz"),
            (b"X-Secret-Key", b"hunter2"),
            (b"x-secret-", b""),
            (b"x-secret-binary", b"\x00\xff\x80"),
        ],
    )
    def test_redacted_headers_never_echo_value(self, name, value):
        """Test any header matching a redaction prefix is replaced by a marker."""
        # Arrange
        config = ServerConfig(redact_prefixes=("authorization", "x-secret-"))

        # Act
        info = _build([(name, value)], config)

        # Assert
        header = info.headers[name.decode().lower()]
        assert isinstance(header, RedactedHeader)
        assert info.to_payload()["headers"][name.decode().lower()] == {"redacted": True}

    @pytest.mark.unit
    def test_non_matching_headers_are_echoed(self):
        """Test headers outside the redaction list keep their value."""
        # Arrange
        config = ServerConfig(redact_prefixes=("x-secret-",))

        # Act
        info = _build([(b"x-secretive", b"visible"), (b"accept", b"*/*")], config)

        # Assert
        assert info.headers == {"x-secretive": "visible", "accept": "*/*"}

    @pytest.mark.unit
    def test_redaction_prefixes_are_case_insensitive(self):
        """Test configured prefixes are lower-cased."""
        config = ServerConfig(redact_prefixes=("X-Api-",))

        info = _build([(b"x-api-key", b"abc")], config)

        assert isinstance(info.headers["x-api-key"], RedactedHeader)


class TestHeaderValues:
    """Test text and binary header value handling."""

    @pytest.mark.unit
    def test_short_binary_value_includes_bytes(self):
        """Test binary values up to 16 bytes carry their data."""
        info = _build([(b"x-test-char", b"probe\x80probe")], ServerConfig())

        header = info.headers["x-test-char"]
        assert isinstance(header, BinaryHeader)
        assert header.data == list(b"probe\x80probe")

    @pytest.mark.unit
    def test_long_binary_value_omits_bytes(self):
        """Test binary values over 16 bytes are reported without data."""
        info = _build([(b"x-long", b"\xff" * 17)], ServerConfig())

        assert info.to_payload()["headers"]["x-long"] == {"binary": True}

    @pytest.mark.unit
    def test_sixteen_byte_binary_value_includes_bytes(self):
        info = _build([(b"x-edge", b"\xfe" * 16)], ServerConfig())

        assert info.to_payload()["headers"]["x-edge"] == {
            "binary": True,
            "data": [0xFE] * 16,
        }

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            (b"plain text", "plain text"),
            (b"tab\tseparated", "tab\tseparated"),
            (b"", ""),
            (b"del\x7f", None),
            (b"high\xe9", None),
            (b"ctrl\x01", None),
        ],
    )
    def test_decode_header_text(self, raw, expected):
        assert decode_header_text(raw) == expected

    @pytest.mark.unit
    def test_headers_keep_order_and_last_duplicate_wins(self):
        """Test header order is preserved and repeated names keep the last value."""
        # Arrange
        raw = [(b"b-first", b"1"), (b"a-second", b"2"), (b"B-First", b"3")]

        # Act
        info = _build(raw, ServerConfig())

        # Assert
        assert list(info.headers) == ["b-first", "a-second"]
        assert info.headers["b-first"] == "3"


class TestPrivacyMode:
    """Test privacy-gated and node identity fields."""

    @pytest.mark.unit
    def test_all_fields_present_without_privacy(self):
        """Test server identity is included when privacy mode is off."""
        # Arrange
        config = ServerConfig(hostname="backend-01", url_prefix="/api")

        # Act
        payload = _build([], config).to_payload()

        # Assert
        assert payload["server_addr"] == "10.0.0.2:3030"
        assert payload["hostname"] == "backend-01"
        assert payload["hostname_hash"] == fingerprint("backend-01")
        assert payload["build_time"] == build_info.build_time()
        assert payload["url_prefix"] == "/api"
        assert "node_name" not in payload

    @pytest.mark.unit
    def test_url_prefix_empty_string_when_unset(self):
        payload = _build([], ServerConfig()).to_payload()

        assert payload["url_prefix"] == ""

    @pytest.mark.unit
    def test_privacy_mode_hides_server_identity(self):
        """Test privacy mode drops server address, hostname, build time, prefix."""
        # Arrange
        config = ServerConfig(hostname="backend-01", url_prefix="/api", privacy_mode=True)

        # Act
        payload = _build([(b"accept", b"*/*")], config).to_payload()

        # Assert
        for field in PRIVACY_FIELDS:
            assert field not in payload
        assert payload["client_addr"] == "10.0.0.1:5000"
        assert payload["protocol"] == "HTTP/1.1"
        assert payload["version"] == build_info.version()
        assert payload["headers"] == {"accept": "*/*"}

    @pytest.mark.unit
    @pytest.mark.parametrize("privacy_mode", [True, False])
    def test_node_name_present_in_both_modes(self, privacy_mode):
        """Test node name and its fingerprint are always reported."""
        config = ServerConfig(node_name="node-a", privacy_mode=privacy_mode)

        payload = _build([], config).to_payload()

        assert payload["node_name"] == "node-a"
        assert payload["node_name_hash"] == fingerprint("node-a")

    @pytest.mark.unit
    def test_node_identity_follows_privacy_rules(self):
        """Test node identity drops the hostname in privacy mode only."""
        public = build_node_identity(ServerConfig(hostname="h", node_name="n"))
        private = build_node_identity(
            ServerConfig(hostname="h", node_name="n", privacy_mode=True)
        )

        assert public.to_payload() == {
            "node_name": "n",
            "node_name_hash": fingerprint("n"),
            "hostname": "h",
            "hostname_hash": fingerprint("h"),
        }
        assert private.to_payload() == {
            "node_name": "n",
            "node_name_hash": fingerprint("n"),
        }


class TestHelpers:
    """Test fingerprints, addresses and protocol labels."""

    @pytest.mark.unit
    def test_fingerprint_is_truncated_sha256(self):
        expected = list(hashlib.sha256("backend-01".encode()).digest()[:16])

        assert fingerprint("backend-01") == expected
        assert len(fingerprint("")) == 16

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "address,expected",
        [
            (("127.0.0.1", 8080), "127.0.0.1:8080"),
            (["::1", 443], "[::1]:443"),
            (None, "unknown"),
        ],
    )
    def test_format_address(self, address, expected):
        assert format_address(address) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "version,expected",
        [("1.1", "HTTP/1.1"), ("1.0", "HTTP/1.0"), ("2", "HTTP/2.0"), (None, "HTTP/1.1")],
    )
    def test_protocol_label(self, version, expected):
        assert protocol_label(version) == expected

    @pytest.mark.unit
    def test_server_info_from_scope(self):
        """Test the snapshot is built from an ASGI scope."""
        # Arrange
        scope = {
            "type": "http",
            "http_version": "1.0",
            "client": ("192.0.2.7", 41000),
            "server": ("192.0.2.1", 3030),
            "headers": [(b"host", b"example.test")],
        }

        # Act
        info = server_info_from_scope(scope, ServerConfig(hostname="h"))

        # Assert
        assert info.client_addr == "192.0.2.7:41000"
        assert info.server_addr == "192.0.2.1:3030"
        assert info.protocol == "HTTP/1.0"
        assert info.headers == {"host": "example.test"}

    @pytest.mark.unit
    def test_handler_additions_via_model_copy(self):
        """Test handler-specific fields extend a copy, not the original."""
        info = _build([], ServerConfig())

        echoed = info.model_copy(update={"path": "/echo", "query": "a=1"})

        assert echoed.to_payload()["path"] == "/echo"
        assert "path" not in info.to_payload()
