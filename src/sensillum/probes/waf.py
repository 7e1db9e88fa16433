"""Catalogue of attack-like payloads for WAF egress testing.

The server sends a named payload back to the client, in the body or in a
response header, so the client can tell whether an intermediary blocks or
rewrites responses that look like attacks.
"""

import json
from dataclasses import dataclass
from functools import lru_cache
from importlib import resources

WAF_PAYLOAD_HEADER = "X-Waf-Payload"


@dataclass(frozen=True)
class WafPayload:
    """A named payload."""

    name: str
    category: str
    payload: str


@lru_cache(maxsize=1)
def load_waf_catalogue() -> dict[str, WafPayload]:
    """Load the packaged payload catalogue, keyed by name."""
    raw = resources.files("sensillum.probes").joinpath("data/waf_payloads.json")
    entries = json.loads(raw.read_text(encoding="utf-8"))
    return {
        entry["name"]: WafPayload(
            name=entry["name"],
            category=entry.get("category", ""),
            payload=entry["payload"],
        )
        for entry in entries
    }


def get_waf_payload(name: str) -> WafPayload | None:
    return load_waf_catalogue().get(name)
