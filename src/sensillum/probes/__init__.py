"""Boundary probes: crafted responses that reveal what an intermediary allows."""

from .cookies import expire_cookie
from .headers import (
    CHARSET_PROBE_HEADER,
    MAX_RESPONSE_HEADER_BYTES,
    charset_probe_value,
    padding_headers,
    parse_probe_byte,
    parse_probe_size,
    validate_header_value,
)
from .waf import WAF_PAYLOAD_HEADER, WafPayload, get_waf_payload, load_waf_catalogue

__all__ = [
    "CHARSET_PROBE_HEADER",
    "MAX_RESPONSE_HEADER_BYTES",
    "WAF_PAYLOAD_HEADER",
    "WafPayload",
    "charset_probe_value",
    "expire_cookie",
    "get_waf_payload",
    "load_waf_catalogue",
    "padding_headers",
    "parse_probe_byte",
    "parse_probe_size",
    "validate_header_value",
]
