"""Shared pytest fixtures for datemath tests."""

from datetime import date
from pathlib import Path

import pytest

from datemath.core.config import ENV_CONFIG, ENV_FORMAT, ENV_LOG_LEVEL, ENV_TODAY


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Keep the caller's environment and any datemath.toml out of the tests."""
    for name in (ENV_CONFIG, ENV_TODAY, ENV_FORMAT, ENV_LOG_LEVEL):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def today() -> date:
    """A fixed "today" so relative expressions are deterministic."""
    return date(2021, 7, 2)
