"""
Query string parsing that keeps literal '+' characters.

Chart descriptions routinely contain '+' (string concatenation in labels,
legacy titles, base64 text). Form-style decoding would turn those into
spaces, so the raw query string is percent-decoded by hand instead.
"""

from urllib.parse import unquote

from fastapi import Request


def parse_query(query_string: str) -> dict[str, str]:
    """Percent-decode a query string; the first occurrence of a key wins."""
    params: dict[str, str] = {}
    for part in query_string.split("&"):
        if not part:
            continue
        key, _, value = part.partition("=")
        key = unquote(key)
        if key and key not in params:
            params[key] = unquote(value)
    return params


def raw_query_params(request: Request) -> dict[str, str]:
    return parse_query(request.scope.get("query_string", b"").decode("latin-1"))
