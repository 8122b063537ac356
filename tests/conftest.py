"""Shared pytest fixtures for the Pop Up Archive SDK tests."""

from __future__ import annotations

import pytest

from popuparchive.core.config.loader import ENV_VARS


@pytest.fixture
def anyio_backend() -> str:
    """Run async tests on asyncio only."""
    return "asyncio"


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch) -> None:
    """Keep developer credentials in the environment out of the tests."""
    for env_var in ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
