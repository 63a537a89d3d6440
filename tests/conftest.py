"""Test configuration: shared fixtures for unit and integration tests."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from headless_chromium.settings.config import LEGACY_ENV_VARS


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_settings_cache(monkeypatch: pytest.MonkeyPatch):
    """Clear the settings LRU cache and legacy env vars between tests."""
    from headless_chromium.settings.config import get_settings

    for var in LEGACY_ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.delenv("HCR_ENV", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def anyio_backend() -> str:
    """The code under test is built on asyncio; run async tests on it only."""
    return "asyncio"


# ---------------------------------------------------------------------------
# Output capture
# ---------------------------------------------------------------------------


@pytest.fixture()
def output() -> io.StringIO:
    """Stand-in for stdout that records forwarded text."""
    return io.StringIO()


# ---------------------------------------------------------------------------
# Executables
# ---------------------------------------------------------------------------


@pytest.fixture()
def make_script(tmp_path: Path):
    """Write an executable ``/bin/sh`` script and return its path."""

    def _make(name: str, body: str) -> Path:
        path = tmp_path / "bin" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(0o755)
        return path

    return _make


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests that spawn real processes")
    config.addinivalue_line("markers", "slow: marks tests that take more than a few seconds")
