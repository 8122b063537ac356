"""Pop Up Archive resource clients."""

from popuparchive.core.api.archive.client import ArchiveClient, AsyncArchiveClient
from popuparchive.core.api.archive.media import get_audio_mime_type

__all__ = [
    "ArchiveClient",
    "AsyncArchiveClient",
    "get_audio_mime_type",
]
