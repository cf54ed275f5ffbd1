# tests/conftest.py

"""Shared pytest fixtures for all sync tests."""

from collections.abc import Generator

import pytest

_CONFIG_ENV_VARS = (
    "VINTED_URL",
    "SKIP_IMAGE_DOWNLOAD",
    "EXTRACTION_MODE",
    "HEADLESS",
    "SYNC_MAX_ATTEMPTS",
    "SYNC_RETRY_DELAY",
    "SYNC_INTERVAL_MINUTES",
    "SCHEDULE_ENABLED",
    "DATA_DIR",
    "HOST",
    "PORT",
)


@pytest.fixture(autouse=True)
def clean_config_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Drop config variables (including any loaded from .env) so defaults apply."""
    for name in _CONFIG_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield
