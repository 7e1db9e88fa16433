"""Cookie-clearing probe."""

from sensillum.core.exceptions import HeaderValueError
from sensillum.probes.headers import validate_header_value

EXPIRED_COOKIE_ATTRIBUTES = "Max-Age=0; Path=/; Expires=Thu, 01 Jan 1970 00:00:00 GMT"


def expire_cookie(name: str) -> str:
    """Set-Cookie value that expires ``name`` at the root path immediately.

    Raises:
        ValueError: If ``name`` is empty.
        HeaderValueError: If the name cannot be carried in a header.
    """
    if not name:
        raise ValueError("missing name parameter")

    value = f"{name}=; {EXPIRED_COOKIE_ATTRIBUTES}"
    try:
        encoded = value.encode("latin-1")
    except UnicodeEncodeError as e:
        raise HeaderValueError(
            value.encode("utf-8"), "cookie name is not latin-1 encodable"
        ) from e
    validate_header_value(encoded)
    return value
