# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""End-to-end tests of SQLCachingProvider against a real SQLite file."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from datetime import timedelta

import pytest
from pydantic import BaseModel

from sqlcache.cache.sql_provider import SQLCachingProvider
from sqlcache.cache.value import CacheValue
from sqlcache.core.exceptions import CacheConnectionError, SerializationError
from sqlcache.storage.provider import SQLDatabaseProvider


class Profile(BaseModel):
    id: int
    email: str


class FlakyProvider(SQLDatabaseProvider):
    """Delegates to SQLite but refuses connections once *fail_after* is reached."""

    def __init__(self, connection_string: str, fail_after: int) -> None:
        super().__init__(connection_string)
        self.fail_after = fail_after
        self.calls = 0

    @contextlib.asynccontextmanager
    async def get_connection(self, name=None):
        self.calls += 1
        if self.calls > self.fail_after:
            raise CacheConnectionError("backend is down")
        async with super().get_connection(name) as conn:
            yield conn


# ---------------------------------------------------------------------------
# Set / Get / Exists
# ---------------------------------------------------------------------------


class TestSetAndGet:
    async def test_get_before_and_after_expiry(self, cache: SQLCachingProvider, clock) -> None:
        await cache.set("k1", {"a": 1}, timedelta(seconds=60))

        clock.advance(59)
        assert await cache.get("k1") == CacheValue.found({"a": 1})

        clock.advance(1)
        result = await cache.get("k1")
        assert result.has_value is False
        assert result == CacheValue.no_value()

    async def test_expiration_as_seconds(self, cache: SQLCachingProvider) -> None:
        await cache.set("k1", "v1", 30)
        assert (await cache.get("k1")).value == "v1"

    async def test_overwrite_existing_key(self, cache: SQLCachingProvider) -> None:
        await cache.set("k1", "old", 60)
        await cache.set("k1", "new", 60)
        assert (await cache.get("k1")).value == "new"
        assert await cache.get_count() == 1

    async def test_get_with_value_type(self, cache: SQLCachingProvider) -> None:
        await cache.set("user:1", Profile(id=1, email="a@example.com"), 60)
        result = await cache.get("user:1", value_type=Profile)
        assert result.value == Profile(id=1, email="a@example.com")

    async def test_stats(self, cache: SQLCachingProvider) -> None:
        await cache.set("k1", "v1", 60)
        await cache.get("k1")
        await cache.get("k1")
        await cache.get("missing")
        assert cache.stats.hits == 2
        assert cache.stats.misses == 1

    async def test_exists_tracks_live_rows(self, cache: SQLCachingProvider, clock) -> None:
        assert await cache.exists("k1") is False
        await cache.set("k1", "v1", 10)
        assert await cache.exists("k1") is True

        await cache.remove("k1")
        assert await cache.exists("k1") is False

        await cache.set("k2", "v2", 10)
        clock.advance(10)
        assert await cache.exists("k2") is False

    async def test_exists_does_not_touch_stats(self, cache: SQLCachingProvider) -> None:
        await cache.set("k1", "v1", 10)
        await cache.exists("k1")
        await cache.exists("k2")
        assert cache.stats.total == 0

    async def test_remove_missing_key_is_noop(self, cache: SQLCachingProvider) -> None:
        await cache.remove("never-set")

    async def test_refresh_replaces_value(self, cache: SQLCachingProvider) -> None:
        await cache.set("k1", "old", 10)
        await cache.refresh("k1", "new", 120)
        assert (await cache.get("k1")).value == "new"
        assert await cache.get_expiration("k1") == timedelta(seconds=120)


# ---------------------------------------------------------------------------
# Fill on miss
# ---------------------------------------------------------------------------


class TestDataRetriever:
    async def test_retriever_called_once(self, cache: SQLCachingProvider) -> None:
        calls: list[str] = []

        def load() -> dict[str, int]:
            calls.append("load")
            return {"n": 42}

        first = await cache.get("k1", load, timedelta(minutes=5))
        second = await cache.get("k1", load, timedelta(minutes=5))

        assert first == CacheValue.found({"n": 42})
        assert second == CacheValue.found({"n": 42})
        assert calls == ["load"]
        assert cache.stats.misses == 1
        assert cache.stats.hits == 1

    async def test_async_retriever(self, cache: SQLCachingProvider) -> None:
        async def load() -> str:
            await asyncio.sleep(0)
            return "computed"

        result = await cache.get("k1", load, 60)
        assert result.value == "computed"
        assert await cache.exists("k1") is True

    async def test_retriever_returning_none(self, cache: SQLCachingProvider) -> None:
        result = await cache.get("k1", lambda: None, 60)
        assert result.has_value is False
        assert await cache.get_count() == 0

    async def test_retriever_error_propagates(self, cache: SQLCachingProvider) -> None:
        def boom() -> str:
            raise RuntimeError("upstream failed")

        with pytest.raises(RuntimeError, match="upstream failed"):
            await cache.get("k1", boom, 60)
        assert cache.stats.misses == 1
        assert await cache.get_count() == 0

    async def test_retriever_refills_after_expiry(
        self, cache: SQLCachingProvider, clock
    ) -> None:
        values = iter(["first", "second"])
        await cache.get("k1", lambda: next(values), 30)
        clock.advance(31)
        result = await cache.get("k1", lambda: next(values), 30)
        assert result.value == "second"


# ---------------------------------------------------------------------------
# TrySet
# ---------------------------------------------------------------------------


class TestTrySet:
    async def test_first_writer_wins(self, cache: SQLCachingProvider) -> None:
        assert await cache.try_set("lock", "owner-a", 60) is True
        assert await cache.try_set("lock", "owner-b", 60) is False
        assert (await cache.get("lock")).value == "owner-a"

    async def test_takes_over_expired_row(self, cache: SQLCachingProvider, clock) -> None:
        await cache.set("lock", "owner-a", 10)
        clock.advance(11)
        assert await cache.try_set("lock", "owner-b", 60) is True
        assert (await cache.get("lock")).value == "owner-b"

    async def test_concurrent_try_set_single_winner(self, cache: SQLCachingProvider) -> None:
        results = await asyncio.gather(
            *(cache.try_set("lock", f"owner-{i}", 60) for i in range(8))
        )
        assert results.count(True) == 1


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------


class TestBulk:
    async def test_get_all_is_total_over_requested_keys(
        self, cache: SQLCachingProvider
    ) -> None:
        await cache.set_all({"k1": 1, "k2": 2}, 60)
        result = await cache.get_all(["k1", "k2", "k3"])

        assert set(result) == {"k1", "k2", "k3"}
        assert result["k1"] == CacheValue.found(1)
        assert result["k2"] == CacheValue.found(2)
        assert result["k3"] == CacheValue.no_value()
        assert cache.stats.hits == 2
        assert cache.stats.misses == 0

    async def test_get_all_hides_expired(self, cache: SQLCachingProvider, clock) -> None:
        await cache.set("short", "s", 5)
        await cache.set("long", "l", 500)
        clock.advance(10)
        result = await cache.get_all(["short", "long"])
        assert result["short"].has_value is False
        assert result["long"].value == "l"

    async def test_set_all_shares_expiration(self, make_cache) -> None:
        cache = await make_cache(max_random_second=30)
        await cache.set_all({f"k{i}": i for i in range(10)}, 60)
        expirations = {await cache.get_expiration(f"k{i}") for i in range(10)}
        assert len(expirations) == 1

    async def test_get_by_prefix(self, cache: SQLCachingProvider, clock) -> None:
        await cache.set_all({"user:1": "a", "user:2": "b", "order:1": "c"}, 60)
        await cache.set("user:old", "x", 5)
        clock.advance(6)

        result = await cache.get_by_prefix("user:")
        assert result == {
            "user:1": CacheValue.found("a"),
            "user:2": CacheValue.found("b"),
        }
        assert cache.stats.hits == 2

    async def test_prefix_wildcards_are_literal(self, cache: SQLCachingProvider) -> None:
        await cache.set_all({"50%_off": 1, "50xyoff": 2, "Upper": 3, "upper": 4}, 60)
        assert set(await cache.get_by_prefix("50%_")) == {"50%_off"}
        assert set(await cache.get_by_prefix("up")) == {"upper"}

    async def test_remove_all(self, cache: SQLCachingProvider) -> None:
        await cache.set_all({"k1": 1, "k2": 2, "k3": 3}, 60)
        await cache.remove_all(["k1", "k3", "missing"])
        assert await cache.get_count() == 1
        assert await cache.exists("k2") is True

    async def test_remove_by_prefix(self, cache: SQLCachingProvider) -> None:
        await cache.set_all({"user:1": "a", "user:2": "b", "order:1": "c"}, 60)
        await cache.remove_by_prefix("user:")
        assert await cache.get_count("user:") == 0
        assert await cache.get_count() == 1
        assert (await cache.get("order:1")).value == "c"


# ---------------------------------------------------------------------------
# Namespaces, counts, flush
# ---------------------------------------------------------------------------


class TestNamespaces:
    async def test_flush_only_clears_own_namespace(self, make_cache) -> None:
        users = await make_cache("users")
        orders = await make_cache("orders")
        await users.set_all({"a": 1, "b": 2}, 60)
        await orders.set("a", "order-a", 60)

        await users.flush()

        assert await users.get_count("") == 0
        assert await orders.get_count("") == 1
        assert (await orders.get("a")).value == "order-a"

    async def test_same_key_in_two_namespaces(self, make_cache) -> None:
        first = await make_cache("first")
        second = await make_cache("second")
        await first.set("k", "one", 60)
        await second.set("k", "two", 60)
        assert (await first.get("k")).value == "one"
        assert (await second.get("k")).value == "two"

    async def test_count_includes_unswept_expired_rows(
        self, cache: SQLCachingProvider, clock
    ) -> None:
        await cache.set("k1", "v1", 5)
        clock.advance(10)
        assert await cache.exists("k1") is False
        assert await cache.get_count() == 1

    async def test_get_expiration(self, cache: SQLCachingProvider, clock) -> None:
        await cache.set("k1", "v1", 60)
        clock.advance(15)
        assert await cache.get_expiration("k1") == timedelta(seconds=45)
        assert await cache.get_expiration("missing") == timedelta(0)


# ---------------------------------------------------------------------------
# Jitter
# ---------------------------------------------------------------------------


class TestJitter:
    async def test_jitter_bounds(self, make_cache) -> None:
        cache = await make_cache(max_random_second=5)
        for i in range(30):
            await cache.set(f"k{i}", i, 60)

        for i in range(30):
            remaining = (await cache.get_expiration(f"k{i}")).total_seconds()
            assert 61 <= remaining <= 65

    async def test_no_jitter_by_default(self, cache: SQLCachingProvider) -> None:
        await cache.set("k1", "v1", 60)
        assert await cache.get_expiration("k1") == timedelta(seconds=60)

    async def test_try_set_applies_jitter(self, make_cache) -> None:
        cache = await make_cache(max_random_second=3)
        await cache.try_set("k1", "v1", 60)
        remaining = (await cache.get_expiration("k1")).total_seconds()
        assert 61 <= remaining <= 63


# ---------------------------------------------------------------------------
# Sub-second clock
# ---------------------------------------------------------------------------


class TestFractionalClock:
    @pytest.fixture(autouse=True)
    def _half_second(self, clock) -> None:
        clock.now = 1_700_000_000.5

    async def test_expires_on_time(self, cache: SQLCachingProvider, clock) -> None:
        await cache.set("k1", "v1", timedelta(seconds=1))

        clock.advance(0.9)
        assert await cache.get("k1") == CacheValue.found("v1")

        clock.advance(0.3)
        assert await cache.get("k1") == CacheValue.no_value()
        assert await cache.exists("k1") is False

    async def test_expires_exactly_at_ttl(self, cache: SQLCachingProvider, clock) -> None:
        await cache.set("k1", "v1", 1.5)
        clock.advance(1.5)
        assert await cache.get("k1") == CacheValue.no_value()

    async def test_remaining_ttl_is_exact(self, cache: SQLCachingProvider, clock) -> None:
        await cache.set("k1", "v1", 10)
        assert await cache.get_expiration("k1") == timedelta(seconds=10)
        clock.advance(2.25)
        assert await cache.get_expiration("k1") == timedelta(seconds=7.75)

    async def test_jitter_stays_within_max(self, make_cache) -> None:
        cache = await make_cache(max_random_second=1)
        await cache.set("k1", "v1", 10)
        assert await cache.get_expiration("k1") == timedelta(seconds=11)

    async def test_sweep_removes_rows_expired_by_fractions(self, make_cache, clock) -> None:
        cache = await make_cache()
        await cache.set("short", "v", 0.5)
        clock.advance(601)
        await cache.set("fresh", "v", 60)
        await cache.close()
        assert await cache.get_count() == 1


# ---------------------------------------------------------------------------
# Expiry sweep
# ---------------------------------------------------------------------------


class TestSweep:
    async def test_sweep_purges_expired_rows_everywhere(self, make_cache, clock) -> None:
        users = await make_cache("users")
        orders = await make_cache("orders")
        await users.set("stale", 1, 5)
        await orders.set("stale", 2, 5)

        clock.advance(601)
        await users.set("fresh", 3, 60)
        await users.close()

        assert users.last_scan_time == clock.now
        assert await users.get_count() == 1
        assert await orders.get_count() == 0

    async def test_no_sweep_within_interval(self, cache: SQLCachingProvider, clock) -> None:
        start = cache.last_scan_time
        await cache.set("stale", 1, 5)
        clock.advance(10)
        await cache.set("fresh", 2, 60)
        await cache.close()

        assert cache.last_scan_time == start
        assert await cache.get_count() == 2

    async def test_custom_scan_frequency(self, make_cache, clock) -> None:
        cache = await make_cache(expiration_scan_frequency=timedelta(seconds=30))
        await cache.set("stale", 1, 5)
        clock.advance(31)
        await cache.set_all({"fresh": 2}, 60)
        await cache.close()
        assert await cache.get_count() == 1

    async def test_sweep_failure_is_swallowed(self, db_path, clock, caplog) -> None:
        from sqlcache.cache.options import SQLCacheOptions

        setup = SQLDatabaseProvider(f"sqlite:///{db_path}")
        await SQLCachingProvider(setup).initialize()

        flaky = FlakyProvider(f"sqlite:///{db_path}", fail_after=1)
        cache = SQLCachingProvider(
            flaky, SQLCacheOptions(enable_logging=True), name="test", clock=clock
        )
        clock.advance(601)

        with caplog.at_level(logging.ERROR, logger="sqlcache.cache.sql_provider"):
            await cache.set("k1", "v1", 60)
            await cache.close()

        assert flaky.calls == 2
        assert "sweep failed" in caplog.text
        assert caplog.records[-1].cache == "test"


class TestEngineLogging:
    async def test_hit_and_miss_logged_with_cache_context(self, make_cache, caplog) -> None:
        cache = await make_cache("users", enable_logging=True)
        await cache.set("u1", "alice", 60)

        with caplog.at_level(logging.INFO, logger="sqlcache.cache.sql_provider"):
            await cache.get("u1")
            await cache.get("u2")

        hit, miss = caplog.records[-2:]
        assert hit.getMessage() == "Cache Hit : cachekey = u1"
        assert (hit.cache, hit.cache_key) == ("users", "u1")
        assert miss.getMessage() == "Cache Missed : cachekey = u2"
        assert (miss.cache, miss.cache_key) == ("users", "u2")

    async def test_silent_without_enable_logging(self, cache: SQLCachingProvider, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="sqlcache.cache.sql_provider"):
            await cache.get("missing")
        assert caplog.records == []


# ---------------------------------------------------------------------------
# Serialization failures
# ---------------------------------------------------------------------------


class TestSerialization:
    async def test_unencodable_value_writes_nothing(self, cache: SQLCachingProvider) -> None:
        with pytest.raises(SerializationError):
            await cache.set("k1", object(), 60)
        assert await cache.get_count() == 0

    async def test_corrupt_payload_raises(
        self, cache: SQLCachingProvider, db_provider: SQLDatabaseProvider, clock
    ) -> None:
        async with db_provider.get_connection() as conn:
            await conn.execute(
                "INSERT INTO sqlcache (cachekey, name, cachevalue, expiration) "
                "VALUES (?, ?, ?, ?)",
                ("k1", "test", "{not json", int(clock.now * 1000) + 60_000),
            )
            await conn.commit()

        with pytest.raises(SerializationError):
            await cache.get("k1")

    async def test_decode_into_wrong_type_raises(self, cache: SQLCachingProvider) -> None:
        await cache.set("k1", "text", 60)
        with pytest.raises(SerializationError):
            await cache.get("k1", value_type=Profile)


# ---------------------------------------------------------------------------
# Concurrency
# ---------------------------------------------------------------------------


class TestConcurrency:
    async def test_distinct_keys_do_not_interfere(self, cache: SQLCachingProvider) -> None:
        await asyncio.gather(*(cache.set(f"k{i}", {"i": i}, 60) for i in range(20)))
        result = await cache.get_all([f"k{i}" for i in range(20)])
        assert all(result[f"k{i}"].value == {"i": i} for i in range(20))

    async def test_same_key_converges(self, cache: SQLCachingProvider) -> None:
        written = [{"writer": i, "payload": "x" * i} for i in range(10)]
        await asyncio.gather(*(cache.set("shared", value, 60) for value in written))
        assert (await cache.get("shared")).value in written
        assert await cache.get_count() == 1
