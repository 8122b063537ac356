"""Tests for ArchiveClient resource operations."""

from __future__ import annotations

import httpx
import pytest

from popuparchive.core.api.archive import ArchiveClient, AsyncArchiveClient, get_audio_mime_type
from popuparchive.core.api.http.config import ClientConfig
from popuparchive.core.api.http.errors import (
    DecodeError,
    MissingClientIdError,
    UnsupportedAudioFormatError,
)
from popuparchive.core.config.models import AppConfig, OAuthSettings


class _Recorder:
    """MockTransport handler that records requests and answers 200."""

    def __init__(self, body: str = '{"ok": true}') -> None:
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(200, text=self.body)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def recorder() -> _Recorder:
    return _Recorder()


@pytest.fixture
def archive(recorder: _Recorder) -> ArchiveClient:
    return ArchiveClient("cid", http_transport=httpx.MockTransport(recorder))


class TestCollections:
    def test_public_collections(self, archive: ArchiveClient, recorder: _Recorder) -> None:
        assert archive.get_public_collections() == '{"ok": true}'
        assert str(recorder.last.url) == (
            "https://www.popuparchive.com/api/collections/public?consumer_key=cid"
        )

    def test_user_collections_with_token(
        self, archive: ArchiveClient, recorder: _Recorder
    ) -> None:
        archive.set_access_token("tok")
        archive.get_user_collections()
        assert str(recorder.last.url) == "https://www.popuparchive.com/api/collections"
        assert recorder.last.headers["authorization"] == "Bearer tok"

    def test_collection_by_id(self, archive: ArchiveClient, recorder: _Recorder) -> None:
        archive.get_collection_by_id(1234, {"fields": "title"})
        assert recorder.last.url.path == "/api/collections/1234"
        assert dict(recorder.last.url.params) == {"fields": "title", "consumer_key": "cid"}

    def test_item_by_id(self, archive: ArchiveClient, recorder: _Recorder) -> None:
        archive.get_item_by_id(12, 34)
        assert recorder.last.url.path == "/api/collections/12/items/34"


class TestSearch:
    def test_items_by_collection_id(self, archive: ArchiveClient, recorder: _Recorder) -> None:
        archive.get_items_by_collection_id(42, {"page": 2})
        assert recorder.last.url.path == "/api/search"
        assert list(recorder.last.url.params.multi_items()) == [
            ("query", "collection_id:42"),
            ("page", "2"),
            ("consumer_key", "cid"),
        ]

    def test_items_query_encoding(self, archive: ArchiveClient) -> None:
        url = archive.build_url("search", {"query": "collection_id:42"})
        assert url == (
            "https://www.popuparchive.com/api/search?query=collection_id%3A42&consumer_key=cid"
        )

    def test_search_by_filter(self, archive: ArchiveClient, recorder: _Recorder) -> None:
        archive.search_by_filter("collection_id", 7, {"query": "chicago OR american"})
        assert recorder.last.url.path == "/api/search"
        assert list(recorder.last.url.params.multi_items()) == [
            ("filters[collection_id]", "7"),
            ("query", "chicago OR american"),
            ("consumer_key", "cid"),
        ]

    def test_search_without_params(self, archive: ArchiveClient, recorder: _Recorder) -> None:
        archive.search_by_filter("tag", "jazz")
        assert dict(recorder.last.url.params) == {"filters[tag]": "jazz", "consumer_key": "cid"}


class TestHelpers:
    @pytest.mark.parametrize(
        ("ext", "mime"),
        [
            ("aac", "video/mp4"),
            ("aiff", "audio/x-aiff"),
            ("flac", "audio/flac"),
            ("mp3", "audio/mpeg"),
            ("ogg", "audio/ogg"),
            ("wav", "audio/x-wav"),
        ],
    )
    def test_audio_mime_types(self, archive: ArchiveClient, ext: str, mime: str) -> None:
        assert archive.get_audio_mime_type(ext) == mime

    def test_unknown_audio_format(self, archive: ArchiveClient) -> None:
        with pytest.raises(UnsupportedAudioFormatError) as ei:
            archive.get_audio_mime_type("xyz")
        assert ei.value.extension == "xyz"

    def test_module_level_lookup(self) -> None:
        assert get_audio_mime_type("mp3") == "audio/mpeg"
        with pytest.raises(ValueError):
            get_audio_mime_type("MP3")

    def test_custom_mime_table(self) -> None:
        archive = ArchiveClient("cid", config=ClientConfig(audio_mime_types={"opus": "audio/opus"}))
        assert archive.get_audio_mime_type("opus") == "audio/opus"
        with pytest.raises(UnsupportedAudioFormatError):
            archive.get_audio_mime_type("mp3")

    def test_json_decoding(self, archive: ArchiveClient) -> None:
        assert archive.json(archive.get_public_collections()) == {"ok": True}

    def test_json_decode_error(self) -> None:
        with pytest.raises(DecodeError):
            ArchiveClient.json("<html>")


class TestFromConfig:
    def test_builds_authenticated_client(self, recorder: _Recorder) -> None:
        app_config = AppConfig(
            oauth=OAuthSettings(client_id="cid", client_secret="s", access_token="tok"),
            http=ClientConfig(domain="staging.example.test"),
        )
        archive = ArchiveClient.from_config(
            app_config, http_transport=httpx.MockTransport(recorder)
        )
        archive.get_public_collections()

        assert archive.current_access_token() == "tok"
        assert str(recorder.last.url) == "https://staging.example.test/api/collections/public"

    def test_missing_client_id(self) -> None:
        with pytest.raises(MissingClientIdError):
            ArchiveClient.from_config(AppConfig())


@pytest.mark.anyio
async def test_async_archive_client(recorder: _Recorder) -> None:
    async with AsyncArchiveClient("cid", http_transport=httpx.MockTransport(recorder)) as archive:
        await archive.get_collection_by_id(5)
        await archive.get_items_by_collection_id(5)
        await archive.search_by_filter("collection_id", 5)

    paths = [r.url.path for r in recorder.requests]
    assert paths == ["/api/collections/5", "/api/search", "/api/search"]
    assert recorder.requests[1].url.params["query"] == "collection_id:5"
    assert recorder.requests[2].url.params["filters[collection_id]"] == "5"


@pytest.mark.anyio
async def test_async_from_config(recorder: _Recorder) -> None:
    app_config = AppConfig(oauth=OAuthSettings(client_id="cid"))
    archive = AsyncArchiveClient.from_config(
        app_config, http_transport=httpx.MockTransport(recorder)
    )
    async with archive:
        assert await archive.get_user_collections() == '{"ok": true}'
    assert recorder.last.url.params["consumer_key"] == "cid"
