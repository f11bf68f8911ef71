"""Shared fixtures for API tests."""
from collections.abc import Callable, Generator

import pytest

from api.main import app
from core.config import Settings, get_settings


@pytest.fixture
def override_settings() -> Generator[Callable[..., Settings]]:
    """
    Replace application settings for the duration of a test.

    Returns a function taking Settings field values; the resulting Settings
    are served to every endpoint (and to authentication).
    """

    def _override(**values: object) -> Settings:
        values.setdefault("database_url", "sqlite+aiosqlite:///:memory:")
        values.setdefault("dev_mode", True)
        settings = Settings(**values)
        app.dependency_overrides[get_settings] = lambda: settings
        return settings

    yield _override
    app.dependency_overrides.pop(get_settings, None)
