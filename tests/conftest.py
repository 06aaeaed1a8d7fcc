"""Shared test fixtures.

Nothing here needs external services: the workspace backend is always
replaced by an in-process fake or an ``httpx.MockTransport``.  Settings are
read from a clean ``RUNFLEET_*`` environment for every test.
"""

from __future__ import annotations

import os
from collections.abc import Iterator

import pytest

from runfleet.workspace_home.settings import _get_settings_cached


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Drop any RUNFLEET_* env vars and invalidate the settings cache."""
    for key in list(os.environ):
        if key.startswith("RUNFLEET_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(os.path.dirname(__file__))  # keep a stray .env out of reach
    _get_settings_cached.cache_clear()
    yield
    _get_settings_cached.cache_clear()
