"""
Shared fixtures.

Every test gets fresh settings pointing the database at a temporary
directory, and UTC as the local zone so local-time behaviour is predictable.
"""

import pytest

from unibudget.config import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Pin configuration to the test's temporary directory."""
    monkeypatch.setenv("UNIBUDGET_STORAGE_DB_PATH", str(tmp_path / "settings-default.db"))
    monkeypatch.setenv("UNIBUDGET_STORAGE_OPEN_RETRY_ATTEMPTS", "1")
    monkeypatch.setenv("UNIBUDGET_TIMEZONE", "UTC")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
