"""Configuration loading utilities with JSON and YAML support."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from popuparchive.core.config.models import AppConfig
from popuparchive.core.utils.logging import configure_logging as _configure_logging

logger = logging.getLogger(__name__)

# Default app config path (can be overridden)
_DEFAULT_APP_CONFIG_PATH = Path("popuparchive.yaml")

# Environment variables consulted when the config file leaves a value unset
ENV_VARS = {
    "client_id": "POPUPARCHIVE_CLIENT_ID",
    "client_secret": "POPUPARCHIVE_CLIENT_SECRET",
    "redirect_uri": "POPUPARCHIVE_REDIRECT_URI",
    "access_token": "POPUPARCHIVE_ACCESS_TOKEN",
}


def detect_format(file_path: Path | str) -> str:
    """Detect config file format from extension.

    Args:
        file_path: Path to config file

    Returns:
        Format string: "json" or "yaml"

    Raises:
        ValueError: If format cannot be determined

    Example:
        >>> detect_format("config.json")
        'json'
        >>> detect_format("config.yml")
        'yaml'
    """
    suffix = Path(file_path).suffix.lower()

    if suffix == ".json":
        return "json"
    elif suffix in [".yaml", ".yml"]:
        return "yaml"
    else:
        raise ValueError(f"Unsupported config format: {suffix}")


def load_config(path: str | Path) -> dict[str, Any]:
    """Load and return raw configuration dictionary.

    Args:
        path: Path to config file (.json, .yaml, or .yml)

    Returns:
        Raw configuration dictionary

    Raises:
        FileNotFoundError: If config file does not exist
        ValueError: If format is not supported or file content is invalid
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    fmt = detect_format(path)

    if fmt == "json":
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {path}: {e}") from e
    else:
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {path}: {e}") from e
        # safe_load returns None for empty files
        if data is None:
            data = {}

    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping in {path}, got {type(data).__name__}")
    return data


def load_app_config(path: str | Path | None = None) -> AppConfig:
    """Load and validate application configuration.

    A missing file yields the defaults. OAuth values left unset are filled
    from the ``POPUPARCHIVE_*`` environment variables.

    Args:
        path: Path to app config file (.json, .yaml, or .yml)

    Returns:
        Validated AppConfig instance

    Raises:
        ValidationError: If config is invalid
    """
    if path is None:
        path = _DEFAULT_APP_CONFIG_PATH

    if Path(path).exists():
        config = AppConfig.model_validate(load_config(path))
    else:
        logger.debug(f"No config file at {path}, using defaults")
        config = AppConfig()

    _load_env_vars_into_config(config)
    return config


def configure_logging(config: AppConfig | None = None) -> None:
    """Configure Python logging from app config.

    Args:
        config: AppConfig instance (loads default if None)
    """
    if config is None:
        config = load_app_config()

    _configure_logging(
        level=config.logging.level,
        format_string=config.logging.format,
        filename=config.logging.filename,
        structured=config.logging.structured,
    )


def _load_env_vars_into_config(config: AppConfig) -> None:
    """Fill unset OAuth values from the environment.

    This mutates the config object.
    """
    updates = {}
    for field, env_var in ENV_VARS.items():
        if getattr(config.oauth, field) is None:
            value = os.getenv(env_var)
            if value:
                logger.debug(f"Loaded {env_var} from environment")
                updates[field] = value

    if updates:
        config.oauth = config.oauth.model_copy(update=updates)
