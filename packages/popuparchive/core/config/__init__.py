"""Configuration management for the Pop Up Archive SDK."""

from popuparchive.core.config.loader import (
    configure_logging,
    detect_format,
    load_app_config,
    load_config,
)
from popuparchive.core.config.models import AppConfig, LoggingConfig, OAuthSettings

__all__ = [
    # Loaders
    "load_config",
    "load_app_config",
    "detect_format",
    "configure_logging",
    # Models
    "AppConfig",
    "LoggingConfig",
    "OAuthSettings",
]
