"""Utility functions for the request pipeline."""

from __future__ import annotations

import json
import re
from collections.abc import Iterable, Mapping
from typing import Any
from urllib.parse import urlencode

_ABSOLUTE_URL_RE = re.compile(r"^https?://")
_VALID_STATUS_RE = re.compile(r"^20[0-9]$")


def is_absolute_url(path: str) -> bool:
    """Check whether ``path`` already carries an http(s) scheme."""
    return bool(_ABSOLUTE_URL_RE.match(path))


def is_valid_status(code: int | str) -> bool:
    """Check a status code against the accepted ``20x`` pattern.

    Args:
        code: HTTP status code

    Returns:
        True for 200-209, False for everything else (redirects included)
    """
    return bool(_VALID_STATUS_RE.match(str(code)))


def build_url(
    domain: str,
    path: str,
    params: Mapping[str, Any] | None = None,
    *,
    use_api_prefix: bool | None = None,
    consumer_key: str | None = None,
) -> str:
    """Build an absolute request URL.

    Absolute ``http(s)://`` paths are used verbatim. Relative paths resolve to
    ``https://{domain}/api/{path}``; the ``api/`` prefix is left out when
    ``use_api_prefix`` is False, or when it is None and the path belongs to the
    authorize flow.

    Args:
        domain: API host
        path: Relative path or absolute URL
        params: Query parameters
        use_api_prefix: Force the ``api/`` prefix on or off
        consumer_key: Client id sent as ``consumer_key`` (unauthenticated calls)

    Returns:
        URL with the encoded query string appended when there is one
    """
    query = dict(params or {})
    query.pop("consumer_key", None)
    if consumer_key:
        query["consumer_key"] = consumer_key

    if is_absolute_url(path):
        url = path
    else:
        if use_api_prefix is None:
            use_api_prefix = "authorize" not in path
        prefix = "api/" if use_api_prefix else ""
        url = f"https://{domain}/{prefix}{path.lstrip('/')}"

    encoded = build_query(query)
    if encoded:
        url += "?" + encoded
    return url


def build_query(params: Mapping[str, Any]) -> str:
    """Form-encode query parameters, preserving insertion order.

    Reserved characters are percent-encoded, spaces become ``+`` and pairs are
    joined with ``&``. ``None`` values are skipped and booleans are sent as
    ``1``/``0``.

    Args:
        params: Ordered mapping of parameter names to values

    Returns:
        Encoded query string without the leading ``?``
    """
    pairs: list[tuple[str, str]] = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = int(value)
        pairs.append((str(key), str(value)))
    return urlencode(pairs)


def normalize_header_name(name: str) -> str:
    """Normalize a header name: lowercase, hyphens converted to underscores."""
    return name.strip().lower().replace("-", "_")


def parse_http_headers(raw: str) -> dict[str, str]:
    """Parse a raw HTTP header block.

    Lines without a ``": "`` separator (status lines, blanks) are ignored. Later
    duplicates overwrite earlier ones.

    Args:
        raw: Header block, lines separated by CRLF or LF

    Returns:
        Mapping of normalized header names to trimmed values

    Example:
        >>> parse_http_headers("Content-Type: application/json\\r\\nX-Foo: bar\\r\\n")
        {'content_type': 'application/json', 'x_foo': 'bar'}
    """
    parsed: dict[str, str] = {}
    for line in raw.strip().split("\n"):
        if ": " not in line:
            continue
        key, value = line.split(": ", 1)
        parsed[normalize_header_name(key)] = value.strip()
    return parsed


def render_header_block(headers: Iterable[tuple[str, str]]) -> str:
    """Render header pairs back into a raw ``Name: value`` CRLF block."""
    return "".join(f"{name}: {value}\r\n" for name, value in headers)


def split_header_line(line: str) -> tuple[str, str]:
    """Split a ``"Name: value"`` request header line into its parts."""
    name, sep, value = line.partition(":")
    if not sep or not name.strip():
        raise ValueError(f"Malformed header line: {line!r}")
    return name.strip(), value.strip()


def merge_header_lines(defaults: Iterable[str], extra: Iterable[str] | None) -> list[str]:
    """Merge caller header lines over defaults.

    A caller header replaces the default with the same (case-insensitive) name;
    new names are appended in caller order.
    """
    merged: dict[str, str] = {}
    for line in defaults:
        name, _ = split_header_line(line)
        merged[name.lower()] = line
    for line in extra or ():
        name, value = split_header_line(line)
        merged[name.lower()] = f"{name}: {value}"
    return list(merged.values())


def safe_snippet(content: str, limit: int) -> str:
    """Truncate response text kept for error reporting."""
    if not content:
        return ""
    return content[:limit]


def json_loads_strict(text: str) -> Any:
    """Load JSON with strict parsing.

    Raises:
        json.JSONDecodeError: If parsing fails
    """
    return json.loads(text)
