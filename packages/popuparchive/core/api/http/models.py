"""Request/response models shared by the sync and async pipelines."""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from popuparchive.core.api.http.transport import RawResponse
from popuparchive.core.api.http.utils import normalize_header_name, parse_http_headers


class HttpMethod(str, Enum):
    """HTTP methods supported by the pipeline."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"


class RequestOptions(BaseModel):
    """Per-call request options.

    Args:
        method: HTTP method
        query_params: Ordered query parameters appended to the URL
        body: Form mapping, raw string/bytes, or None
        extra_headers: ``"Name: value"`` lines merged over the default headers
        include_auth: Attach the bearer token when one is held
        transport: Transport option overrides for this call only
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method: HttpMethod = HttpMethod.GET
    query_params: dict[str, Any] = Field(default_factory=dict)
    body: Mapping[str, Any] | str | bytes | None = None
    extra_headers: tuple[str, ...] = ()
    include_auth: bool = True
    transport: dict[str, Any] = Field(default_factory=dict)


class ResponseEnvelope(BaseModel):
    """Status, normalized headers and body of one dispatched request.

    Header keys are lowercased with hyphens converted to underscores.
    """

    model_config = {"frozen": True}

    status_code: int
    headers: dict[str, str] = Field(default_factory=dict)
    body: str = ""

    @classmethod
    def from_raw(cls, raw: RawResponse) -> ResponseEnvelope:
        """Parse a transport result into an envelope."""
        return cls(
            status_code=raw.status_code,
            headers=parse_http_headers(raw.raw_headers),
            body=raw.raw_body,
        )

    def header(self, name: str) -> str | None:
        """Look up a header by raw or normalized name."""
        return self.headers.get(normalize_header_name(name))


class TokenIssued(BaseModel):
    """Successful token exchange.

    Args:
        access_token: Bearer token now held by the TokenManager
        refresh_token: Refresh token, when the provider returned one
        token_type: Token type reported by the provider
        expires_in: Lifetime in seconds, when reported as a number
        payload: Full decoded token response, raw values included
    """

    model_config = {"frozen": True}

    access_token: str
    refresh_token: str | None = None
    token_type: str | None = None
    expires_in: float | None = None
    payload: dict[str, Any] = Field(default_factory=dict)

    @field_validator("refresh_token", "token_type", mode="before")
    @classmethod
    def _as_text(cls, v: Any) -> str | None:
        if v is None or isinstance(v, (dict, list)):
            return None
        return str(v)

    @field_validator("expires_in", mode="before")
    @classmethod
    def _as_seconds(cls, v: Any) -> float | None:
        # Non-numeric lifetimes stay in payload only
        if isinstance(v, bool):
            return None
        try:
            return float(v)
        except (TypeError, ValueError):
            return None

    @property
    def issued(self) -> bool:
        return True


class TokenNotIssued(BaseModel):
    """Token exchange that completed without an ``access_token`` in the response.

    This is an unsuccessful exchange, not an error.
    """

    model_config = {"frozen": True}

    payload: Any = None

    @property
    def issued(self) -> bool:
        return False


TokenResult = TokenIssued | TokenNotIssued
