"""Query-string decoding.

``+`` decodes to a space and ``%XX`` to the raw byte, mapped to the code point
of the same value so that every byte survives the round trip. A ``%`` not
followed by two hex digits is dropped together with the two characters after
it. The last occurrence of a repeated key wins and pairs with an empty key are
dropped.
"""

HEX_DIGITS = "0123456789abcdefABCDEF"


def decode_query_component(text: str) -> str:
    """Decode one key or value of a query string."""
    out: list[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        if char == "+":
            out.append(" ")
        elif char == "%":
            escape = text[i + 1 : i + 3]
            if len(escape) == 2 and all(c in HEX_DIGITS for c in escape):
                out.append(chr(int(escape, 16)))
            i += 2
        else:
            out.append(char)
        i += 1
    return "".join(out)


def parse_query(query: str | bytes) -> dict[str, str]:
    """Parse a raw query string into a key to value mapping."""
    if isinstance(query, bytes):
        query = query.decode("latin-1")
    if not query:
        return {}

    params: dict[str, str] = {}
    for pair in query.split("&"):
        key, _, value = pair.partition("=")
        if key:
            params[decode_query_component(key)] = decode_query_component(value)
    return params
