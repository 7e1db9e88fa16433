"""Boundary probe endpoints: echo, header byte/size probes, cookie clearing."""

import logging

from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from sensillum.core.exceptions import HeaderValueError
from sensillum.core.server_info import build_node_identity, server_info_from_scope
from sensillum.probes import (
    CHARSET_PROBE_HEADER,
    WAF_PAYLOAD_HEADER,
    charset_probe_value,
    expire_cookie,
    get_waf_payload,
    padding_headers,
    parse_probe_byte,
    parse_probe_size,
)
from sensillum.utils.query import parse_query
from sensillum.web.routing import any_method_route, get_config

logger = logging.getLogger(__name__)

ECHO_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
    "Access-Control-Expose-Headers": "*",
}
NO_STORE_HEADERS = {
    "Cache-Control": "no-store",
    "Access-Control-Allow-Origin": "*",
}


def _query(request: Request) -> dict[str, str]:
    return parse_query(request.scope.get("query_string", b""))


def _raw_path(request: Request) -> str:
    raw_path = request.scope.get("raw_path")
    if not raw_path:
        return request.url.path
    return raw_path.split(b"?", 1)[0].decode("latin-1")


async def echo(request: Request) -> Response:
    """Snapshot plus the request path and query exactly as they arrived."""
    info = server_info_from_scope(request.scope, get_config(request))
    info = info.model_copy(
        update={
            "path": _raw_path(request),
            "query": request.scope.get("query_string", b"").decode("latin-1"),
        }
    )
    return JSONResponse(info.to_payload(), headers=ECHO_HEADERS)


async def header_probe(request: Request) -> Response:
    """Byte probe (``byte=HH``) or response-header-size probe (``size``, ``mode``)."""
    params = _query(request)
    if "byte" in params:
        return _byte_probe(params["byte"])

    size = parse_probe_size(params.get("size"))
    mode = params.get("mode", "single")

    response = JSONResponse(
        {"ok": True}, headers={"Access-Control-Expose-Headers": "*"}
    )
    for name, value in padding_headers(size, mode):
        response.headers.append(name, value)
    return response


def _byte_probe(text: str) -> JSONResponse:
    try:
        byte = parse_probe_byte(text)
    except ValueError as e:
        return JSONResponse({"ok": False, "reason": str(e)}, status_code=400)

    byte_hex = f"{byte:02x}"
    try:
        value = charset_probe_value(byte)
    except HeaderValueError as e:
        logger.debug(f"Byte probe 0x{byte_hex} rejected: {e.reason}")
        return JSONResponse({"ok": False, "byte": byte_hex, "reason": e.reason})

    response = JSONResponse(
        {"ok": True, "byte": byte_hex},
        headers={"Access-Control-Expose-Headers": "*"},
    )
    response.raw_headers.append((CHARSET_PROBE_HEADER.encode("latin-1"), value))
    return response


async def delete_cookie(request: Request) -> Response:
    """Expire the cookie named by ``name`` at the root path."""
    name = _query(request).get("name", "")
    if not name:
        return JSONResponse({"error": "missing name parameter"}, status_code=400)

    return JSONResponse({"ok": True}, headers={"Set-Cookie": expire_cookie(name)})


async def node_identity(request: Request) -> Response:
    """Identity of the node that answered."""
    identity = build_node_identity(get_config(request))
    return JSONResponse(identity.to_payload(), headers=NO_STORE_HEADERS)


async def waf_payload(request: Request) -> Response:
    """Send a catalogue payload back in the body or, with ``method=header``, a header."""
    params = _query(request)
    name = params.get("name", "")
    if not name:
        return JSONResponse({"error": "missing name parameter"}, status_code=400)

    entry = get_waf_payload(name)
    if entry is None:
        return JSONResponse({"error": f"unknown payload: {name}"}, status_code=404)

    if params.get("method") == "header":
        headers = {
            WAF_PAYLOAD_HEADER: entry.payload,
            "Access-Control-Expose-Headers": "*",
            **NO_STORE_HEADERS,
        }
        return PlainTextResponse("OK", headers=headers)

    return PlainTextResponse(entry.payload, headers=NO_STORE_HEADERS)


routes = [
    any_method_route("/echo", echo),
    any_method_route("/echo/{rest:path}", echo),
    any_method_route("/hdr", header_probe),
    any_method_route("/delete-cookie", delete_cookie),
    any_method_route("/lb", node_identity),
    any_method_route("/waf", waf_payload),
]
