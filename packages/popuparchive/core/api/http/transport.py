"""Transport collaborators for the request pipeline.

The pipeline only depends on the narrow ``Transport`` / ``AsyncTransport``
protocols. The default implementations wrap HTTPX; sockets, TLS and
transport-level failures (``httpx.RequestError``) stay HTTPX's business and
propagate to the caller unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import httpx
from pydantic import BaseModel

from popuparchive.core.api.http.config import TransportOptions
from popuparchive.core.api.http.utils import render_header_block, split_header_line

RequestBody = Mapping[str, Any] | str | bytes | None


class RawResponse(BaseModel):
    """Unparsed result of a transport round trip.

    Args:
        status_code: HTTP status code
        raw_headers: Response header block (``Name: value`` lines)
        raw_body: Response body, separated from the header block
    """

    model_config = {"frozen": True}

    status_code: int
    raw_headers: str
    raw_body: str


class Transport(Protocol):
    """Synchronous transport collaborator."""

    def execute(
        self,
        url: str,
        method: str,
        headers: Sequence[str],
        body: RequestBody,
        *,
        options: TransportOptions,
    ) -> RawResponse: ...

    def close(self) -> None: ...


class AsyncTransport(Protocol):
    """Asynchronous transport collaborator."""

    async def execute(
        self,
        url: str,
        method: str,
        headers: Sequence[str],
        body: RequestBody,
        *,
        options: TransportOptions,
    ) -> RawResponse: ...

    async def aclose(self) -> None: ...


def _request_kwargs(
    headers: Sequence[str], body: RequestBody, options: TransportOptions
) -> dict[str, Any]:
    """Translate pipeline arguments into ``httpx`` request keyword arguments."""
    kwargs: dict[str, Any] = {
        "headers": [split_header_line(line) for line in headers],
        "follow_redirects": options.follow_redirects,
        "timeout": options.timeout if options.timeout is not None else httpx.USE_CLIENT_DEFAULT,
    }
    if isinstance(body, Mapping):
        kwargs["data"] = {k: v for k, v in body.items() if v is not None}
    elif body is not None:
        kwargs["content"] = body
    return kwargs


def _to_raw_response(resp: httpx.Response) -> RawResponse:
    """Flatten an ``httpx.Response`` into status, header block and body."""
    block = render_header_block(
        (k.decode("latin-1"), v.decode("latin-1")) for k, v in resp.headers.raw
    )
    return RawResponse(status_code=resp.status_code, raw_headers=block, raw_body=resp.text)


class HttpxTransport:
    """Transport backed by ``httpx.Client``.

    Args:
        verify: TLS certificate verification (True, False, or CA bundle path)
        transport: Optional custom HTTPX transport (useful for testing)
    """

    def __init__(
        self,
        *,
        verify: bool | str = True,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(verify=verify, transport=transport)

    def execute(
        self,
        url: str,
        method: str,
        headers: Sequence[str],
        body: RequestBody,
        *,
        options: TransportOptions,
    ) -> RawResponse:
        resp = self._client.request(method, url, **_request_kwargs(headers, body, options))
        return _to_raw_response(resp)

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()


class AsyncHttpxTransport:
    """Transport backed by ``httpx.AsyncClient``.

    Args:
        verify: TLS certificate verification (True, False, or CA bundle path)
        transport: Optional custom HTTPX transport (useful for testing)
    """

    def __init__(
        self,
        *,
        verify: bool | str = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(verify=verify, transport=transport)

    async def execute(
        self,
        url: str,
        method: str,
        headers: Sequence[str],
        body: RequestBody,
        *,
        options: TransportOptions,
    ) -> RawResponse:
        resp = await self._client.request(method, url, **_request_kwargs(headers, body, options))
        return _to_raw_response(resp)

    async def aclose(self) -> None:
        """Close the underlying HTTP client and release resources."""
        await self._client.aclose()
