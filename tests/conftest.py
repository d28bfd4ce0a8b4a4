# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Shared test fixtures and configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from sqlcache.cache.options import SQLCacheOptions
from sqlcache.cache.sql_provider import SQLCachingProvider
from sqlcache.storage.provider import SQLDatabaseProvider

START_TIME = 1_700_000_000


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = float(start)

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cache.db"


@pytest.fixture
def db_provider(db_path: Path) -> SQLDatabaseProvider:
    return SQLDatabaseProvider(f"sqlite:///{db_path}")


@pytest.fixture
async def make_cache(db_provider: SQLDatabaseProvider, clock: FakeClock):
    """Factory for initialized caches sharing one table and clock."""
    created: list[SQLCachingProvider] = []

    async def _make(name: str = "test", **options: object) -> SQLCachingProvider:
        cache = SQLCachingProvider(
            db_provider, SQLCacheOptions(**options), name=name, clock=clock
        )
        await cache.initialize()
        created.append(cache)
        return cache

    yield _make
    for cache in created:
        await cache.close()


@pytest.fixture
async def cache(make_cache) -> SQLCachingProvider:
    return await make_cache()


@pytest.fixture(autouse=True)
def _clear_caches():
    """Reset the cache registry between tests."""
    from sqlcache.cache.manager import reset_caches

    reset_caches()
    yield
    reset_caches()
