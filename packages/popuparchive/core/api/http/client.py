"""Request pipeline for the Pop Up Archive API.

Provides:
- URL construction with ``consumer_key`` for unauthenticated calls
- Default headers (Accept, Authorization: Bearer) merged with caller headers
- Dispatch through a pluggable transport (HTTPX by default)
- Header normalization and ``20x`` status validation
- OAuth2 token exchanges prepared by ``TokenManager``
- Request/response logging with redaction
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from popuparchive.core.api.http.config import API_VERSION, ClientConfig, TransportOptions
from popuparchive.core.api.http.errors import (
    UnsupportedResponseFormatError,
    categorize_http_error,
)
from popuparchive.core.api.http.logging_utils import (
    RequestLogContext,
    log_request,
    log_response,
    redact_url,
)
from popuparchive.core.api.http.models import (
    HttpMethod,
    RequestOptions,
    ResponseEnvelope,
    TokenResult,
)
from popuparchive.core.api.http.oauth import TokenManager, TokenRequest
from popuparchive.core.api.http.transport import (
    AsyncHttpxTransport,
    AsyncTransport,
    HttpxTransport,
    RawResponse,
    Transport,
)
from popuparchive.core.api.http.utils import (
    build_url,
    is_valid_status,
    merge_header_lines,
    safe_snippet,
)

logger = logging.getLogger(__name__)


def _call_options(
    base: RequestOptions | None,
    method: HttpMethod,
    query_params: Mapping[str, Any] | None = None,
    body: Any = None,
) -> RequestOptions:
    """Combine caller options with the method, query and body of a verb call."""
    base = base or RequestOptions()
    query = {**base.query_params, **(query_params or {})}
    return base.model_copy(
        update={
            "method": method,
            "query_params": query,
            "body": body if body is not None else base.body,
        }
    )


class _BaseApiClient:
    """State and pure pipeline steps shared by the sync and async clients.

    Args:
        client_id: OAuth client id (required, non-empty)
        client_secret: OAuth client secret
        redirect_uri: OAuth redirect URI
        config: Client configuration
        access_token: Token obtained out-of-band, if any
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        *,
        config: ClientConfig | None = None,
        access_token: str | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.tokens = TokenManager(
            client_id,
            client_secret,
            redirect_uri,
            domain=self.config.domain,
            oauth_paths=self.config.oauth_paths,
        )
        if access_token:
            self.tokens.set_access_token(access_token)

        self._response_format: str | None = None
        if self.config.response_format is not None:
            self.set_response_format(self.config.response_format)
        self._transport_options = self.config.transport
        self.last_response: ResponseEnvelope | None = None

    # -- configuration -----------------------------------------------------

    @property
    def api_version(self) -> int:
        return API_VERSION

    @property
    def user_agent(self) -> str:
        return self._transport_options.user_agent

    @property
    def response_format(self) -> str | None:
        """MIME type sent in the Accept header."""
        return self._response_format

    def set_response_format(self, fmt: str) -> _BaseApiClient:
        """Select the response format by key (``"*"`` or ``"json"``).

        Raises:
            UnsupportedResponseFormatError: If the key is not in the format table
        """
        if fmt not in self.config.response_formats:
            raise UnsupportedResponseFormatError(fmt)
        self._response_format = self.config.response_formats[fmt]
        return self

    def get_transport_options(self, key: str | None = None) -> Any:
        """Return all transport options, or one of them (None if unknown)."""
        options = self._transport_options.model_dump()
        if key is None:
            return options
        return options.get(key)

    def set_transport_options(self, options: Mapping[str, Any]) -> _BaseApiClient:
        """Merge transport option overrides; caller values win."""
        self._transport_options = self._transport_options.merged(options)
        return self

    # -- token state -------------------------------------------------------

    @property
    def redirect_uri(self) -> str | None:
        return self.tokens.redirect_uri

    def set_redirect_uri(self, redirect_uri: str | None) -> _BaseApiClient:
        self.tokens.set_redirect_uri(redirect_uri)
        return self

    def current_access_token(self) -> str | None:
        return self.tokens.current_access_token()

    def set_access_token(self, token: str | None) -> _BaseApiClient:
        self.tokens.set_access_token(token)
        return self

    def build_authorize_url(self, extra_params: Mapping[str, Any] | None = None) -> str:
        return self.tokens.build_authorize_url(extra_params)

    def access_token_url(self, params: Mapping[str, Any] | None = None) -> str:
        return self.tokens.access_token_url(params)

    # -- pipeline steps ----------------------------------------------------

    def build_url(
        self,
        path: str,
        query_params: Mapping[str, Any] | None = None,
        use_api_prefix: bool | None = None,
    ) -> str:
        """Build the absolute URL for ``path``.

        ``consumer_key`` is added while no access token is held and never once
        one is.
        """
        return build_url(
            self.config.domain,
            path,
            query_params,
            use_api_prefix=use_api_prefix,
            consumer_key=self.tokens.consumer_key(),
        )

    def build_headers(self, include_auth: bool = True) -> list[str]:
        """Default request header lines."""
        headers: list[str] = []
        if self._response_format:
            headers.append(f"Accept: {self._response_format}")
        token = self.tokens.current_access_token()
        if include_auth and token:
            headers.append(f"Authorization: Bearer {token}")
        return headers

    @staticmethod
    def is_valid_status(code: int) -> bool:
        return is_valid_status(code)

    def _prepare(self, options: RequestOptions) -> tuple[str, list[str], TransportOptions]:
        """Resolve method, merged headers and effective transport options."""
        transport_options = self._transport_options.merged(options.transport)
        defaults = [f"User-Agent: {transport_options.user_agent}"]
        defaults.extend(self.build_headers(options.include_auth))
        headers = merge_header_lines(defaults, options.extra_headers)
        return options.method.value, headers, transport_options

    def _log_start(
        self, method: str, url: str, headers: list[str], body: Any
    ) -> tuple[RequestLogContext, float]:
        ctx = RequestLogContext(method=method, url=redact_url(url, self.config.redact_fields))
        form = body if isinstance(body, Mapping) else None
        start = log_request(
            ctx, headers, self.config.redact_headers, form, self.config.redact_fields
        )
        return ctx, start

    def _record(self, raw: RawResponse) -> ResponseEnvelope:
        envelope = ResponseEnvelope.from_raw(raw)
        self.last_response = envelope
        return envelope

    def _check(self, envelope: ResponseEnvelope, method: str, url: str) -> str:
        """Return the body of a ``20x`` response, raise for anything else."""
        if is_valid_status(envelope.status_code):
            return envelope.body
        exc_cls = categorize_http_error(envelope.status_code)
        logger.warning(
            "HTTP error response",
            extra={"method": method, "status_code": envelope.status_code},
        )
        raise exc_cls(
            http_code=envelope.status_code,
            http_body=safe_snippet(envelope.body, self.config.max_response_body_for_error),
            method=method,
            url=redact_url(url, self.config.redact_fields),
            response_headers=dict(envelope.headers),
        )

    # -- diagnostics -------------------------------------------------------

    @property
    def last_http_code(self) -> int | None:
        return self.last_response.status_code if self.last_response else None

    @property
    def last_http_body(self) -> str | None:
        return self.last_response.body if self.last_response else None

    @property
    def last_http_headers(self) -> dict[str, str]:
        return dict(self.last_response.headers) if self.last_response else {}

    def get_http_header(self, name: str) -> str | None:
        """Header from the last response, by raw or normalized name."""
        if self.last_response is None:
            return None
        return self.last_response.header(name)


class ApiClient(_BaseApiClient):
    """Synchronous Pop Up Archive API client.

    Args:
        client_id: OAuth client id (required, non-empty)
        client_secret: OAuth client secret
        redirect_uri: OAuth redirect URI
        config: Client configuration
        access_token: Token obtained out-of-band, if any
        transport: Transport collaborator (defaults to HttpxTransport)
        http_transport: Custom HTTPX transport for the default collaborator
            (useful for testing with ``httpx.MockTransport``)

    Example:
        >>> with ApiClient("client-id", "secret") as client:
        ...     client.exchange_credentials("user", "pass")
        ...     body = client.get("collections")
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        *,
        config: ClientConfig | None = None,
        access_token: str | None = None,
        transport: Transport | None = None,
        http_transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__(
            client_id,
            client_secret,
            redirect_uri,
            config=config,
            access_token=access_token,
        )
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport(
            verify=self.config.verify, transport=http_transport
        )

    def close(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            self._transport.close()

    def __enter__(self) -> ApiClient:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def dispatch(self, url: str, options: RequestOptions) -> ResponseEnvelope:
        """Send one request and capture status, normalized headers and body.

        The status is not validated here. The envelope is also kept as
        ``last_response``.
        """
        method, headers, transport_options = self._prepare(options)
        ctx, start = self._log_start(method, url, headers, options.body)
        raw = self._transport.execute(
            url, method, headers, options.body, options=transport_options
        )
        log_response(ctx, raw.status_code, time.perf_counter() - start)
        return self._record(raw)

    def request(self, path: str, options: RequestOptions | None = None) -> str:
        """Build the URL, dispatch and validate.

        Returns:
            Raw response body

        Raises:
            InvalidHttpResponseError: If the status is not ``20x``
        """
        options = options or RequestOptions()
        url = self.build_url(path, options.query_params)
        return self._send(url, options)

    def _send(self, url: str, options: RequestOptions) -> str:
        envelope = self.dispatch(url, options)
        return self._check(envelope, options.method.value, url)

    def get(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        """Send a GET request."""
        return self.request(path, _call_options(options, HttpMethod.GET, params))

    def post(
        self,
        path: str,
        data: Mapping[str, Any] | str | bytes | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        """Send a POST request with a form or raw body."""
        return self.request(path, _call_options(options, HttpMethod.POST, body=data))

    def put(
        self,
        path: str,
        data: Mapping[str, Any] | str | bytes | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        """Send a PUT request with a form or raw body."""
        return self.request(path, _call_options(options, HttpMethod.PUT, body=data))

    def delete(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        """Send a DELETE request."""
        return self.request(path, _call_options(options, HttpMethod.DELETE, params))

    # -- OAuth2 exchanges --------------------------------------------------

    def exchange_authorization_code(
        self,
        code: str | None = None,
        extra_post_data: Mapping[str, Any] | None = None,
        request_options: RequestOptions | None = None,
    ) -> TokenResult:
        """Trade an authorization code for an access token."""
        return self._exchange(
            lambda: self.tokens.authorization_code_request(code, extra_post_data, request_options)
        )

    def exchange_credentials(self, username: str, password: str) -> TokenResult:
        """Obtain an access token with the resource-owner password grant."""
        return self._exchange(lambda: self.tokens.credentials_request(username, password))

    def refresh_access_token(
        self,
        refresh_token: str,
        extra_post_data: Mapping[str, Any] | None = None,
        request_options: RequestOptions | None = None,
    ) -> TokenResult:
        """Exchange a refresh token for a new access token."""
        return self._exchange(
            lambda: self.tokens.refresh_request(refresh_token, extra_post_data, request_options)
        )

    def _exchange(self, prepare: Callable[[], TokenRequest]) -> TokenResult:
        with self.tokens.exchange_lock:
            token_request = prepare()
            logger.debug("Token exchange", extra={"grant_type": token_request.grant_type})
            body = self._send(token_request.url, token_request.options)
            return self.tokens.accept_token_response(body, url=token_request.url)


class AsyncApiClient(_BaseApiClient):
    """Asynchronous Pop Up Archive API client.

    Mirrors ``ApiClient``; every network operation is awaitable. Token
    exchanges are serialized with an ``asyncio.Lock``. ``last_response`` is
    shared between concurrent calls (last writer wins); use the envelope
    returned by ``dispatch`` for per-call data.

    Example:
        >>> async with AsyncApiClient("client-id") as client:
        ...     body = await client.get("collections/public")
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        *,
        config: ClientConfig | None = None,
        access_token: str | None = None,
        transport: AsyncTransport | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            client_id,
            client_secret,
            redirect_uri,
            config=config,
            access_token=access_token,
        )
        self._owns_transport = transport is None
        self._transport: AsyncTransport = transport or AsyncHttpxTransport(
            verify=self.config.verify, transport=http_transport
        )
        self._token_lock = asyncio.Lock()

    async def aclose(self) -> None:
        """Close the transport if this client created it."""
        if self._owns_transport:
            await self._transport.aclose()

    async def __aenter__(self) -> AsyncApiClient:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def dispatch(self, url: str, options: RequestOptions) -> ResponseEnvelope:
        """Send one request and capture status, normalized headers and body."""
        method, headers, transport_options = self._prepare(options)
        ctx, start = self._log_start(method, url, headers, options.body)
        raw = await self._transport.execute(
            url, method, headers, options.body, options=transport_options
        )
        log_response(ctx, raw.status_code, time.perf_counter() - start)
        return self._record(raw)

    async def request(self, path: str, options: RequestOptions | None = None) -> str:
        """Build the URL, dispatch and validate.

        Raises:
            InvalidHttpResponseError: If the status is not ``20x``
        """
        options = options or RequestOptions()
        url = self.build_url(path, options.query_params)
        return await self._send(url, options)

    async def _send(self, url: str, options: RequestOptions) -> str:
        envelope = await self.dispatch(url, options)
        return self._check(envelope, options.method.value, url)

    async def get(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        return await self.request(path, _call_options(options, HttpMethod.GET, params))

    async def post(
        self,
        path: str,
        data: Mapping[str, Any] | str | bytes | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        return await self.request(path, _call_options(options, HttpMethod.POST, body=data))

    async def put(
        self,
        path: str,
        data: Mapping[str, Any] | str | bytes | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        return await self.request(path, _call_options(options, HttpMethod.PUT, body=data))

    async def delete(
        self,
        path: str,
        params: Mapping[str, Any] | None = None,
        options: RequestOptions | None = None,
    ) -> str:
        return await self.request(path, _call_options(options, HttpMethod.DELETE, params))

    async def exchange_authorization_code(
        self,
        code: str | None = None,
        extra_post_data: Mapping[str, Any] | None = None,
        request_options: RequestOptions | None = None,
    ) -> TokenResult:
        return await self._exchange(
            lambda: self.tokens.authorization_code_request(code, extra_post_data, request_options)
        )

    async def exchange_credentials(self, username: str, password: str) -> TokenResult:
        return await self._exchange(lambda: self.tokens.credentials_request(username, password))

    async def refresh_access_token(
        self,
        refresh_token: str,
        extra_post_data: Mapping[str, Any] | None = None,
        request_options: RequestOptions | None = None,
    ) -> TokenResult:
        return await self._exchange(
            lambda: self.tokens.refresh_request(refresh_token, extra_post_data, request_options)
        )

    async def _exchange(self, prepare: Callable[[], TokenRequest]) -> TokenResult:
        async with self._token_lock:
            token_request = prepare()
            logger.debug("Token exchange", extra={"grant_type": token_request.grant_type})
            body = await self._send(token_request.url, token_request.options)
            return self.tokens.accept_token_response(body, url=token_request.url)
