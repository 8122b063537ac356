"""Pop Up Archive resource operations (collections, items, search).

Thin wrappers over the request pipeline: each method only builds a path and
query, and returns the raw body of a successful response.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from popuparchive.core.api.archive.media import get_audio_mime_type
from popuparchive.core.api.http.client import ApiClient, AsyncApiClient
from popuparchive.core.api.http.config import ClientConfig
from popuparchive.core.api.http.errors import DecodeError
from popuparchive.core.api.http.models import RequestOptions
from popuparchive.core.api.http.utils import json_loads_strict
from popuparchive.core.config.models import AppConfig

logger = logging.getLogger(__name__)

Params = Mapping[str, Any] | None


def _items_query(collection_id: str | int, params: Params) -> dict[str, Any]:
    return {"query": f"collection_id:{collection_id}", **(params or {})}


def _filter_query(filter_key: str, filter_value: Any, params: Params) -> dict[str, Any]:
    return {f"filters[{filter_key}]": filter_value, **(params or {})}


class _ArchiveHelpers:
    """Resource helpers that need no I/O."""

    config: ClientConfig

    def get_audio_mime_type(self, extension: str) -> str:
        return get_audio_mime_type(extension, self.config.audio_mime_types)

    @staticmethod
    def json(body: str) -> Any:
        """Decode a JSON response body.

        Raises:
            DecodeError: If the body is not valid JSON
        """
        try:
            return json_loads_strict(body)
        except ValueError as e:
            raise DecodeError("Response body is not valid JSON") from e

    @classmethod
    def _kwargs_from_config(cls, app_config: AppConfig) -> dict[str, Any]:
        oauth = app_config.oauth
        return {
            "client_id": oauth.client_id,
            "client_secret": oauth.client_secret,
            "redirect_uri": oauth.redirect_uri,
            "access_token": oauth.access_token,
            "config": app_config.http,
        }


class ArchiveClient(_ArchiveHelpers, ApiClient):
    """Synchronous client for the Pop Up Archive API.

    Example:
        >>> with ArchiveClient("client-id", "secret") as archive:
        ...     body = archive.get_public_collections()
        ...     collections = archive.json(body)
    """

    @classmethod
    def from_config(cls, app_config: AppConfig, **kwargs: Any) -> ArchiveClient:
        """Build a client from application configuration."""
        return cls(**{**cls._kwargs_from_config(app_config), **kwargs})

    def get_public_collections(
        self, params: Params = None, options: RequestOptions | None = None
    ) -> str:
        """All public collections."""
        return self.get("collections/public", params, options)

    def get_user_collections(
        self, params: Params = None, options: RequestOptions | None = None
    ) -> str:
        """Public and private collections of the authenticated user.

        Without an access token the API only returns public data.
        """
        return self.get("collections", params, options)

    def get_collection_by_id(
        self,
        collection_id: str | int,
        params: Params = None,
        options: RequestOptions | None = None,
    ) -> str:
        """Metadata of one collection."""
        return self.get(f"collections/{collection_id}", params, options)

    def get_item_by_id(
        self,
        collection_id: str | int,
        item_id: str | int,
        params: Params = None,
        options: RequestOptions | None = None,
    ) -> str:
        """One audio item and its metadata."""
        return self.get(f"collections/{collection_id}/items/{item_id}", params, options)

    def get_items_by_collection_id(
        self,
        collection_id: str | int,
        params: Params = None,
        options: RequestOptions | None = None,
    ) -> str:
        """All audio items of a collection, through the search endpoint."""
        return self.get("search", _items_query(collection_id, params), options)

    def search_by_filter(
        self,
        filter_key: str,
        filter_value: Any,
        params: Params = None,
        options: RequestOptions | None = None,
    ) -> str:
        """Search narrowed by ``filters[filter_key]=filter_value``.

        Args:
            filter_key: Filter name (e.g. "collection_id")
            filter_value: Filter value
            params: Extra query parameters, e.g. {"query": "chicago OR american", "page": 1}
        """
        return self.get("search", _filter_query(filter_key, filter_value, params), options)


class AsyncArchiveClient(_ArchiveHelpers, AsyncApiClient):
    """Asynchronous client for the Pop Up Archive API."""

    @classmethod
    def from_config(cls, app_config: AppConfig, **kwargs: Any) -> AsyncArchiveClient:
        return cls(**{**cls._kwargs_from_config(app_config), **kwargs})

    async def get_public_collections(
        self, params: Params = None, options: RequestOptions | None = None
    ) -> str:
        return await self.get("collections/public", params, options)

    async def get_user_collections(
        self, params: Params = None, options: RequestOptions | None = None
    ) -> str:
        return await self.get("collections", params, options)

    async def get_collection_by_id(
        self,
        collection_id: str | int,
        params: Params = None,
        options: RequestOptions | None = None,
    ) -> str:
        return await self.get(f"collections/{collection_id}", params, options)

    async def get_item_by_id(
        self,
        collection_id: str | int,
        item_id: str | int,
        params: Params = None,
        options: RequestOptions | None = None,
    ) -> str:
        return await self.get(f"collections/{collection_id}/items/{item_id}", params, options)

    async def get_items_by_collection_id(
        self,
        collection_id: str | int,
        params: Params = None,
        options: RequestOptions | None = None,
    ) -> str:
        return await self.get("search", _items_query(collection_id, params), options)

    async def search_by_filter(
        self,
        filter_key: str,
        filter_value: Any,
        params: Params = None,
        options: RequestOptions | None = None,
    ) -> str:
        return await self.get("search", _filter_query(filter_key, filter_value, params), options)
