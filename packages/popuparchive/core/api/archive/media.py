"""Audio MIME type lookup for archive uploads."""

from __future__ import annotations

from collections.abc import Mapping

from popuparchive.core.api.http.config import AUDIO_MIME_TYPES
from popuparchive.core.api.http.errors import UnsupportedAudioFormatError


def get_audio_mime_type(extension: str, table: Mapping[str, str] = AUDIO_MIME_TYPES) -> str:
    """Return the MIME type for an audio file extension.

    Args:
        extension: File extension without the dot (e.g. "mp3")
        table: Extension to MIME type table

    Returns:
        MIME type string

    Raises:
        UnsupportedAudioFormatError: If the extension is unknown

    Example:
        >>> get_audio_mime_type("mp3")
        'audio/mpeg'
    """
    try:
        return table[extension]
    except KeyError:
        raise UnsupportedAudioFormatError(extension) from None
