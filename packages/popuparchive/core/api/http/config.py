from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict, Field, field_validator

from popuparchive.core.version import __version__

API_VERSION = 1
DEFAULT_DOMAIN = "www.popuparchive.com"
USER_AGENT = f"SDK-Python-Popuparchive/{__version__}"

RESPONSE_FORMATS: Mapping[str, str] = MappingProxyType(
    {
        "*": "*/*",
        "json": "application/json",
    }
)

AUDIO_MIME_TYPES: Mapping[str, str] = MappingProxyType(
    {
        "aac": "video/mp4",
        "aiff": "audio/x-aiff",
        "flac": "audio/flac",
        "mp3": "audio/mpeg",
        "ogg": "audio/ogg",
        "wav": "audio/x-wav",
    }
)

OAUTH_PATHS: Mapping[str, str] = MappingProxyType(
    {
        "authorize": "oauth/authorize",
        "access_token": "oauth/token",
    }
)


class TransportOptions(BaseModel):
    """Per-request transport settings.

    Args:
        timeout: Request timeout in seconds (None keeps the transport default)
        follow_redirects: Whether the transport follows 3xx responses
        user_agent: User-Agent header value
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    timeout: float | None = Field(default=None, gt=0)
    follow_redirects: bool = False
    user_agent: str = USER_AGENT

    def merged(self, overrides: Mapping[str, object] | None) -> TransportOptions:
        """Return a copy with caller overrides applied (caller wins)."""
        if not overrides:
            return self
        return self.model_validate({**self.model_dump(), **overrides})


class ClientConfig(BaseModel):
    """Configuration for ApiClient / AsyncApiClient.

    Args:
        domain: API host (scheme and path are added by the URL builder)
        response_format: Key into ``response_formats`` selecting the Accept header,
            or None to send no Accept header
        response_formats: Supported response format table
        audio_mime_types: Extension to MIME type table
        oauth_paths: Authorize and token endpoint paths
        transport: Default transport options
        verify: TLS certificate verification (True, False, or path to CA bundle)
        redact_headers: Headers to redact in logs (case-insensitive)
        redact_fields: Query/form fields to redact in logs
        max_response_body_for_error: Max characters of body kept on errors
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    domain: str = DEFAULT_DOMAIN
    response_format: str | None = "json"
    # Read-only tables shared by every config (never deep-copied)
    response_formats: Mapping[str, str] = Field(default_factory=lambda: RESPONSE_FORMATS)
    audio_mime_types: Mapping[str, str] = Field(default_factory=lambda: AUDIO_MIME_TYPES)
    oauth_paths: Mapping[str, str] = Field(default_factory=lambda: OAUTH_PATHS)
    transport: TransportOptions = Field(default_factory=TransportOptions)
    verify: bool | str = True
    redact_headers: tuple[str, ...] = (
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
    )
    redact_fields: tuple[str, ...] = (
        "client_secret",
        "password",
        "refresh_token",
        "code",
        "access_token",
    )
    max_response_body_for_error: int = Field(default=65536, gt=0)

    @field_validator("domain")
    @classmethod
    def validate_domain(cls, v: str) -> str:
        """Ensure domain is a bare host name."""
        v = v.strip().strip("/")
        if not v:
            raise ValueError("domain cannot be empty")
        if "://" in v:
            raise ValueError("domain must not include a scheme")
        return v
