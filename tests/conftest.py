"""Shared test fixtures: settings isolation.

Every test runs in its own temporary working directory with no provider
credential in the environment, so neither a developer's ``.env`` nor their
``OPENAI_API_KEY`` leaks into a test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from andromeda_copilot.agent_runtime.settings import _get_settings_cached


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Run in ``tmp_path`` with a clean settings cache."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("ANDROMEDA_OPENAI_API_KEY", raising=False)
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()
