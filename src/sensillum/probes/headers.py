"""Response-header probes.

The byte probe places a single chosen byte inside a response header so a
client can see whether an intermediary forwards it untouched. The size probe
pads the response header block to a requested size so a client can
binary-search the largest block an intermediary tolerates.
"""

from sensillum.core.exceptions import HeaderValueError

CHARSET_PROBE_HEADER = "x-charset-test"
CHARSET_PROBE_MARKER = b"probe"

SIZE_PROBE_HEADER = "x-response-test"
SIZE_PROBE_MULTI_COUNT = 10

# No point generating more than 2 MiB of response headers
MAX_RESPONSE_HEADER_BYTES = 2 * 1024 * 1024


def validate_header_value(value: bytes) -> None:
    """Check that ``value`` may be sent as an HTTP header value.

    Per RFC 9110 a field value holds horizontal tab, space, visible ASCII and
    obs-text (0x80-0xFF). Other control characters and DEL are rejected.

    Raises:
        HeaderValueError: If a byte is not allowed.
    """
    for byte in value:
        if byte == 0x09 or 0x20 <= byte <= 0x7E or byte >= 0x80:
            continue
        if byte == 0x7F:
            raise HeaderValueError(value, "DEL (0x7f) is not allowed in header values")
        raise HeaderValueError(
            value, f"control character 0x{byte:02x} is not allowed in header values"
        )


def parse_probe_byte(text: str) -> int:
    """Parse the two-hex-digit byte of a charset probe.

    Raises:
        ValueError: If ``text`` is not exactly two hex digits.
    """
    if len(text) != 2 or any(c not in "0123456789abcdefABCDEF" for c in text):
        raise ValueError("byte must be exactly two hex digits")
    return int(text, 16)


def charset_probe_value(byte: int) -> bytes:
    """Header value ``probe<byte>probe`` for the charset probe.

    Raises:
        HeaderValueError: If the byte cannot appear in a header value.
    """
    value = CHARSET_PROBE_MARKER + bytes([byte]) + CHARSET_PROBE_MARKER
    validate_header_value(value)
    return value


def parse_probe_size(text: str | None) -> int:
    """Requested header block size, clamped to ``MAX_RESPONSE_HEADER_BYTES``.

    Missing, malformed or negative values count as zero.
    """
    try:
        size = int(text) if text else 0
    except ValueError:
        return 0
    return min(max(size, 0), MAX_RESPONSE_HEADER_BYTES)


def padding_headers(size: int, mode: str) -> list[tuple[str, str]]:
    """Headers whose values add up to roughly ``size`` bytes.

    mode "multi" spreads the size over ten headers; anything else produces a
    single header.
    """
    if size <= 0:
        return []

    if mode == "multi":
        per_header = size // SIZE_PROBE_MULTI_COUNT
        if per_header == 0:
            return []
        value = "x" * per_header
        return [
            (f"{SIZE_PROBE_HEADER}-{i}", value) for i in range(SIZE_PROBE_MULTI_COUNT)
        ]

    return [(SIZE_PROBE_HEADER, "x" * size)]
