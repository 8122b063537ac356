from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel

from popuparchive.core.api.http.utils import split_header_line

logger = logging.getLogger("popuparchive.core.api.http")

REDACTED = "***REDACTED***"


def _lower_set(values: Iterable[str]) -> set[str]:
    """Convert strings to a lowercase set."""
    return {v.lower() for v in values}


def redact_header_lines(lines: Iterable[str], redact: tuple[str, ...]) -> dict[str, str]:
    """Redact sensitive request headers for logging.

    Args:
        lines: ``"Name: value"`` header lines
        redact: Header names to redact (case-insensitive)

    Returns:
        Header mapping with sensitive values replaced with "***REDACTED***"
    """
    red = _lower_set(redact)
    out: dict[str, str] = {}
    for line in lines:
        name, value = split_header_line(line)
        out[name] = REDACTED if name.lower() in red else value
    return out


def redact_fields(data: Mapping[str, object], redact: tuple[str, ...]) -> dict[str, object]:
    """Redact sensitive form fields for logging."""
    red = _lower_set(redact)
    return {k: (REDACTED if k.lower() in red else v) for k, v in data.items()}


def redact_url(url: str, redact: tuple[str, ...]) -> str:
    """Redact sensitive query parameters in a URL."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    red = _lower_set(redact)
    pairs = [
        (k, REDACTED if k.lower() in red else v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(pairs)))


class RequestLogContext(BaseModel):
    """Context for structured HTTP request logging.

    Args:
        method: HTTP method (GET, POST, etc.)
        url: Request URL (already redacted)
    """

    method: str
    url: str


def log_request(
    ctx: RequestLogContext,
    headers: Iterable[str],
    redact: tuple[str, ...],
    form: Mapping[str, object] | None = None,
    redact_form: tuple[str, ...] = (),
) -> float:
    """Log HTTP request with redacted headers and form fields.

    Returns:
        Start timestamp for elapsed time calculation
    """
    start = time.perf_counter()
    extra: dict[str, object] = {
        "method": ctx.method,
        "url": ctx.url,
        "headers": redact_header_lines(headers, redact),
    }
    if form is not None:
        extra["form"] = redact_fields(form, redact_form)
    logger.debug("HTTP request", extra=extra)
    return start


def log_response(ctx: RequestLogContext, status_code: int, elapsed_s: float) -> None:
    """Log HTTP response with timing information."""
    logger.debug(
        "HTTP response",
        extra={
            "method": ctx.method,
            "url": ctx.url,
            "status_code": status_code,
            "elapsed_ms": int(elapsed_s * 1000),
        },
    )
