"""Shared utilities for the Pop Up Archive SDK."""

from popuparchive.core.utils.logging import (
    StructuredJSONFormatter,
    configure_logging,
    get_logger,
)

__all__ = [
    "StructuredJSONFormatter",
    "configure_logging",
    "get_logger",
]
