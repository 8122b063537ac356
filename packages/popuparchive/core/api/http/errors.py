from __future__ import annotations

from pydantic import BaseModel


class PopUpArchiveError(Exception):
    """Base exception for all Pop Up Archive SDK errors."""


class MissingClientIdError(PopUpArchiveError, ValueError):
    """Raised when a client is constructed without an OAuth client id."""

    def __init__(self, message: str = "An OAuth client id is required.") -> None:
        super().__init__(message)


class UnsupportedResponseFormatError(PopUpArchiveError, ValueError):
    """Raised when selecting a response format outside the supported table."""

    def __init__(self, fmt: str) -> None:
        self.format = fmt
        super().__init__(f"The given response format is unsupported: {fmt!r}")


class UnsupportedAudioFormatError(PopUpArchiveError, ValueError):
    """Raised when no MIME type is known for an audio file extension."""

    def __init__(self, extension: str) -> None:
        self.extension = extension
        super().__init__(f"The given audio format is unsupported: {extension!r}")


class DecodeError(PopUpArchiveError):
    """Failed to decode a response body that had to be JSON."""


class ApiErrorData(BaseModel):
    """Structured data for HTTP status errors.

    Args:
        message: Human-readable error description
        method: HTTP method (GET, POST, etc.)
        url: Request URL
        http_code: HTTP status code returned by the server
        http_body: Raw response body
        response_headers: Normalized response headers
    """

    message: str
    method: str
    url: str
    http_code: int
    http_body: str = ""
    response_headers: dict[str, str] | None = None


class InvalidHttpResponseError(PopUpArchiveError):
    """The transport completed but the server answered with a non-2xx status.

    Attributes:
        data: Structured error data (ApiErrorData)
        message: "The requested URL responded with HTTP code <code>."
        method: HTTP method
        url: Request URL
        http_code: HTTP status code
        http_body: Raw response body, for callers that want to inspect the failure
        response_headers: Normalized response headers
    """

    MESSAGE = "The requested URL responded with HTTP code {code}."

    def __init__(
        self,
        *,
        http_code: int,
        http_body: str = "",
        method: str = "GET",
        url: str = "",
        response_headers: dict[str, str] | None = None,
    ) -> None:
        self.data = ApiErrorData(
            message=self.MESSAGE.format(code=http_code),
            method=method,
            url=url,
            http_code=http_code,
            http_body=http_body,
            response_headers=response_headers,
        )
        # Expose fields as attributes for convenience
        self.message = self.data.message
        self.method = self.data.method
        self.url = self.data.url
        self.http_code = self.data.http_code
        self.http_body = self.data.http_body
        self.response_headers = self.data.response_headers

        super().__init__(str(self))

    @property
    def status_code(self) -> int:
        return self.http_code

    def __str__(self) -> str:
        parts = [self.message]
        if self.url:
            parts.append(f"{self.method} {self.url}")
        return " | ".join(parts)


class AuthError(InvalidHttpResponseError):
    """HTTP 401/403 authentication or authorization error."""


class RateLimitError(InvalidHttpResponseError):
    """HTTP 429 rate limit error."""


class ClientError(InvalidHttpResponseError):
    """HTTP 4xx client error (excluding auth and rate limit)."""


class ServerError(InvalidHttpResponseError):
    """HTTP 5xx server error."""


def categorize_http_error(status_code: int) -> type[InvalidHttpResponseError]:
    """Map HTTP status code to the most specific error class."""
    if status_code in (401, 403):
        return AuthError
    if status_code == 429:
        return RateLimitError
    if 400 <= status_code < 500:
        return ClientError
    if 500 <= status_code < 600:
        return ServerError
    return InvalidHttpResponseError
