"""Pytest configuration and fixtures."""

import os

import pytest

os.environ.setdefault("GATEKEEPER_ENV", "test")
os.environ.setdefault("SNAPSHOT_BACKEND", "memory")


@pytest.fixture(autouse=True)
def clear_cached_singletons():
    """Rebuild settings, stores and limiters for every test."""
    from gatekeeper.api import deps
    from gatekeeper.core.config import get_settings
    from gatekeeper.core.snapshot_store import get_snapshot_store
    from gatekeeper.db.supabase_client import get_supabase

    caches = [
        get_settings,
        get_snapshot_store,
        get_supabase,
        deps.get_guard_rate_limiter,
        deps.get_attempt_history,
    ]
    for fn in caches:
        fn.cache_clear()
    yield
    for fn in caches:
        fn.cache_clear()


class FakeClock:
    """Manually advanced clock for TTL and rate-limit tests."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
