"""Shared fixtures: every test gets its own data directory and fresh settings."""

import pytest

from cascade_tracker.config import get_settings
from cascade_tracker.resolution import poller as poller_module


@pytest.fixture(autouse=True)
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("RESOLUTION__INTER_CALL_DELAY_SECONDS", "0")
    get_settings.cache_clear()
    poller_module._poller = None
    yield tmp_path
    get_settings.cache_clear()
    poller_module._poller = None
