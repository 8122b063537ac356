"""Request pipeline and OAuth2 token handling for the Pop Up Archive API.

Exposes a small, ergonomic surface:
- ApiClient / AsyncApiClient: request pipeline + token exchanges
- TokenManager: OAuth2 credential state
- ClientConfig / TransportOptions: configuration
- Transports: HttpxTransport / AsyncHttpxTransport
- Exceptions: PopUpArchiveError and subclasses
"""

from popuparchive.core.api.http.client import ApiClient, AsyncApiClient
from popuparchive.core.api.http.config import (
    API_VERSION,
    AUDIO_MIME_TYPES,
    RESPONSE_FORMATS,
    USER_AGENT,
    ClientConfig,
    TransportOptions,
)
from popuparchive.core.api.http.errors import (
    AuthError,
    ClientError,
    DecodeError,
    InvalidHttpResponseError,
    MissingClientIdError,
    PopUpArchiveError,
    RateLimitError,
    ServerError,
    UnsupportedAudioFormatError,
    UnsupportedResponseFormatError,
)
from popuparchive.core.api.http.models import (
    HttpMethod,
    RequestOptions,
    ResponseEnvelope,
    TokenIssued,
    TokenNotIssued,
    TokenResult,
)
from popuparchive.core.api.http.oauth import ClientCredentials, TokenManager
from popuparchive.core.api.http.transport import (
    AsyncHttpxTransport,
    AsyncTransport,
    HttpxTransport,
    RawResponse,
    Transport,
)

__all__ = [
    "ApiClient",
    "AsyncApiClient",
    "TokenManager",
    "ClientCredentials",
    "ClientConfig",
    "TransportOptions",
    "API_VERSION",
    "AUDIO_MIME_TYPES",
    "RESPONSE_FORMATS",
    "USER_AGENT",
    "HttpMethod",
    "RequestOptions",
    "ResponseEnvelope",
    "TokenIssued",
    "TokenNotIssued",
    "TokenResult",
    "Transport",
    "AsyncTransport",
    "HttpxTransport",
    "AsyncHttpxTransport",
    "RawResponse",
    "PopUpArchiveError",
    "MissingClientIdError",
    "UnsupportedResponseFormatError",
    "UnsupportedAudioFormatError",
    "DecodeError",
    "InvalidHttpResponseError",
    "AuthError",
    "RateLimitError",
    "ClientError",
    "ServerError",
]
