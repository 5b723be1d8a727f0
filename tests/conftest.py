"""Shared test fixtures."""

from __future__ import annotations

import pytest

from async_fanout.dispatcher import AsyncDispatcher

_ENV_VARS = (
    "ASYNC_FANOUT_DEFAULT_FALLBACK",
    "ASYNC_FANOUT_AWAIT_TIMEOUT_SECONDS",
    "ASYNC_FANOUT_WORKER_MIN_DELAY_SECONDS",
    "ASYNC_FANOUT_WORKER_MAX_DELAY_SECONDS",
    "ASYNC_FANOUT_LOG_LEVEL",
)


@pytest.fixture()
def dispatcher() -> AsyncDispatcher:
    return AsyncDispatcher()


@pytest.fixture()
def clean_env(monkeypatch):
    """Drop any ASYNC_FANOUT_* overrides inherited from the shell."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
