"""
tests/conftest.py -- Shared test fixtures for the credstore test suite.

This module provides:
  - dict_kv: factory for DictKV, a plain in-process backend honouring the
             KV contract, with an optional per-call delay (and a hook run
             inside get) to widen race windows in thread tests
  - fixed_random: factory for deterministic salt sources
  - kv / repo: a fresh SQLAlchemy-backed store + repository per test

Design: plain sqlite:///:memory: is enough here. SQLAlchemy keeps one
connection per thread for in-memory SQLite, so the schema created in
KVStore.__init__ stays visible to every later call made from the test
thread. Thread tests use DictKV instead of SQLite.
"""

from __future__ import annotations

import time
from collections.abc import Generator

import pytest

from auth.store import UserRepository
from core.config import get_settings
from kv.store import KVStore

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class DictKV:
    """Dictionary-backed key-value store with the same contract as KVStore."""

    def __init__(self, delay: float = 0.0) -> None:
        self.data: dict[str, str] = {}
        self.delay = delay
        self.values_calls = 0
        self.on_get = None  # optional callable(key), run before the delay

    def _pause(self) -> None:
        if self.delay:
            time.sleep(self.delay)

    def get(self, key: str) -> str | None:
        value = self.data.get(key)
        if self.on_get is not None:
            self.on_get(key)
        self._pause()
        return value

    def set(self, key: str, value: str) -> None:
        self._pause()
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)

    def count(self) -> int:
        return len(self.data)

    def values(self) -> list[str]:
        self.values_calls += 1
        return list(self.data.values())


def _fixed_random(byte: int = 0x5A):
    """Return a salt source that always yields the same byte repeated."""

    def _random(n: int) -> bytes:
        return bytes([byte]) * n

    return _random


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Isolate every test from credstore variables in the developer's environment."""
    for var in ("DATABASE_URL", "USERS_TABLE", "BOOTSTRAP_ADMIN_PASSWORD", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def dict_kv():
    """Return the DictKV class; call it to build a backend."""
    return DictKV


@pytest.fixture
def fixed_random():
    """Return a factory: fixed_random(byte) -> salt source repeating byte."""
    return _fixed_random


@pytest.fixture
def kv() -> Generator[KVStore, None, None]:
    store = KVStore("sqlite:///:memory:")
    yield store
    store.close()


@pytest.fixture
def repo(kv: KVStore) -> UserRepository:
    return UserRepository(kv)
