"""OAuth2 credential state and token-exchange requests.

The TokenManager never talks to the network itself. It builds the authorize
URL and the token-endpoint requests, and stores the access token found in a
successful token response. ``ApiClient`` / ``AsyncApiClient`` dispatch the
requests it prepares.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from popuparchive.core.api.http.config import DEFAULT_DOMAIN, OAUTH_PATHS
from popuparchive.core.api.http.errors import DecodeError, MissingClientIdError
from popuparchive.core.api.http.models import (
    HttpMethod,
    RequestOptions,
    TokenIssued,
    TokenNotIssued,
    TokenResult,
)
from popuparchive.core.api.http.utils import build_url, json_loads_strict

logger = logging.getLogger(__name__)


class ClientCredentials(BaseModel):
    """OAuth client identity. Only ``redirect_uri`` may change after construction."""

    model_config = ConfigDict(validate_assignment=True)

    client_id: str = Field(frozen=True, min_length=1)
    client_secret: str | None = Field(default=None, frozen=True, repr=False)
    redirect_uri: str | None = None


class TokenState(BaseModel):
    """Current bearer token; None means requests go out unauthenticated."""

    model_config = ConfigDict(validate_assignment=True)

    access_token: str | None = Field(default=None, repr=False)


class TokenRequest(BaseModel):
    """A prepared POST to the token endpoint.

    Args:
        grant_type: OAuth grant being exercised
        url: Absolute token endpoint URL
        form: Form fields to send
        options: Request options (method POST, body = form)
    """

    model_config = ConfigDict(frozen=True)

    grant_type: str
    url: str
    form: dict[str, Any]
    options: RequestOptions


class TokenManager:
    """Owns the OAuth2 state machine: unauthenticated -> authorized -> refreshed.

    Args:
        client_id: OAuth client id (required, non-empty)
        client_secret: OAuth client secret
        redirect_uri: OAuth redirect URI
        domain: API host
        oauth_paths: Authorize and token endpoint paths

    Raises:
        MissingClientIdError: If client_id is empty or None

    Example:
        >>> tokens = TokenManager("abc", "secret", redirect_uri="https://cb")
        >>> tokens.build_authorize_url()
        'https://www.popuparchive.com/oauth/authorize?client_id=abc&redirect_uri=...'
    """

    def __init__(
        self,
        client_id: str | None,
        client_secret: str | None = None,
        redirect_uri: str | None = None,
        *,
        domain: str = DEFAULT_DOMAIN,
        oauth_paths: Mapping[str, str] = OAUTH_PATHS,
    ) -> None:
        if not client_id:
            raise MissingClientIdError()

        self.credentials = ClientCredentials(
            client_id=client_id,
            client_secret=client_secret,
            redirect_uri=redirect_uri,
        )
        self.domain = domain
        self.oauth_paths = oauth_paths
        self._state = TokenState()
        self._write_lock = threading.Lock()
        # Held by the sync client for a whole exchange (dispatch + store).
        self.exchange_lock = threading.RLock()

    @property
    def client_id(self) -> str:
        return self.credentials.client_id

    @property
    def redirect_uri(self) -> str | None:
        return self.credentials.redirect_uri

    @redirect_uri.setter
    def redirect_uri(self, value: str | None) -> None:
        self.credentials.redirect_uri = value

    def set_redirect_uri(self, redirect_uri: str | None) -> TokenManager:
        self.redirect_uri = redirect_uri
        return self

    def current_access_token(self) -> str | None:
        """Return the stored access token, or None when unauthenticated."""
        return self._state.access_token

    def set_access_token(self, token: str | None) -> TokenManager:
        """Override the stored token (e.g. one obtained out-of-band)."""
        with self._write_lock:
            self._state.access_token = token or None
        return self

    @property
    def is_authenticated(self) -> bool:
        return self._state.access_token is not None

    def consumer_key(self) -> str | None:
        """Client id to send as ``consumer_key``; None once a token is held."""
        return None if self.is_authenticated else self.client_id

    def build_authorize_url(self, extra_params: Mapping[str, Any] | None = None) -> str:
        """Build the provider's authorize URL. No network call.

        Args:
            extra_params: Query parameters overriding or extending the defaults

        Returns:
            Absolute authorize URL (no ``/api/`` prefix)
        """
        params: dict[str, Any] = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
        }
        params.update(extra_params or {})
        return build_url(
            self.domain,
            self.oauth_paths["authorize"],
            params,
            use_api_prefix=False,
            consumer_key=self.consumer_key(),
        )

    def access_token_url(self, params: Mapping[str, Any] | None = None) -> str:
        """Absolute URL of the token endpoint."""
        return build_url(
            self.domain,
            self.oauth_paths["access_token"],
            params,
            use_api_prefix=False,
            consumer_key=self.consumer_key(),
        )

    def authorization_code_request(
        self,
        code: str | None = None,
        extra_post_data: Mapping[str, Any] | None = None,
        request_options: RequestOptions | None = None,
    ) -> TokenRequest:
        """Prepare the ``authorization_code`` grant.

        Falsy fields are dropped after merging, so an empty ``code`` or
        ``client_secret`` is never sent.
        """
        form: dict[str, Any] = {
            "code": code,
            "client_id": self.client_id,
            "client_secret": self.credentials.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "authorization_code",
        }
        form.update(extra_post_data or {})
        form = {k: v for k, v in form.items() if v}
        return self._token_request("authorization_code", form, request_options)

    def credentials_request(self, username: str, password: str) -> TokenRequest:
        """Prepare the resource-owner ``password`` grant."""
        form = {
            "client_id": self.client_id,
            "client_secret": self.credentials.client_secret,
            "username": username,
            "password": password,
            "grant_type": "password",
        }
        return self._token_request("password", form, None)

    def refresh_request(
        self,
        refresh_token: str,
        extra_post_data: Mapping[str, Any] | None = None,
        request_options: RequestOptions | None = None,
    ) -> TokenRequest:
        """Prepare the ``refresh_token`` grant."""
        form: dict[str, Any] = {
            "refresh_token": refresh_token,
            "client_id": self.client_id,
            "client_secret": self.credentials.client_secret,
            "redirect_uri": self.redirect_uri,
            "grant_type": "refresh_token",
        }
        form.update(extra_post_data or {})
        return self._token_request("refresh_token", form, request_options)

    def _token_request(
        self,
        grant_type: str,
        form: dict[str, Any],
        request_options: RequestOptions | None,
    ) -> TokenRequest:
        base = request_options or RequestOptions()
        options = base.model_copy(update={"method": HttpMethod.POST, "body": form})
        return TokenRequest(
            grant_type=grant_type,
            url=self.access_token_url(base.query_params),
            form=form,
            options=options.model_copy(update={"query_params": {}}),
        )

    def accept_token_response(self, body: str, *, url: str = "") -> TokenResult:
        """Interpret a 2xx token-endpoint body and store any issued token.

        Args:
            body: Raw response body
            url: Token endpoint URL, for error context

        Returns:
            TokenIssued when the JSON object carries a non-empty ``access_token``,
            TokenNotIssued otherwise (stored token left unchanged)

        Raises:
            DecodeError: If the body is not valid JSON
        """
        try:
            payload = json_loads_strict(body) if body.strip() else None
        except json.JSONDecodeError as e:
            raise DecodeError(f"Token endpoint returned invalid JSON: {url}") from e

        if not isinstance(payload, dict) or not payload.get("access_token"):
            logger.info("Token endpoint did not issue an access token")
            return TokenNotIssued(payload=payload)

        result = TokenIssued(
            access_token=str(payload["access_token"]),
            refresh_token=payload.get("refresh_token"),
            token_type=payload.get("token_type"),
            expires_in=payload.get("expires_in"),
            payload=payload,
        )
        self.set_access_token(result.access_token)
        logger.debug("Stored new access token")
        return result
