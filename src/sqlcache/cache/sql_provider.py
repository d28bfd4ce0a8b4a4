# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Relational caching provider.

:class:`SQLCachingProvider` stores entries as rows of one table keyed by
``(cachekey, name)`` where ``name`` is the cache namespace.  Every row
carries an absolute ``expiration`` (Unix milliseconds); reads filter out rows
whose expiration has passed, so stale rows are invisible long before they
are physically removed.

Removal is lazy: each ``set``/``set_all`` checks whether
``expiration_scan_frequency`` has elapsed since the last sweep and, if so,
spawns a detached task that deletes every expired row in the table.  The
triggering call never waits for it, and a failing sweep is only logged.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import random
import time
from collections.abc import Callable, Iterable, Mapping
from contextlib import AbstractAsyncContextManager
from datetime import timedelta
from typing import Any

from sqlcache.cache.base import CachingProvider, DataRetriever, Expiration
from sqlcache.cache.options import SQLCacheOptions
from sqlcache.cache.serializer import JsonSerializer, Serializer
from sqlcache.cache.stats import CacheStats
from sqlcache.cache.value import CacheValue
from sqlcache.core.constants import DEFAULT_CACHE_NAME, CachingProviderType
from sqlcache.core.exceptions import InvalidArgumentError
from sqlcache.storage.backend import DatabaseBackend
from sqlcache.storage.provider import ConnectionProvider
from sqlcache.storage.schema import build_statements, ensure_cache_table, like_prefix

logger = logging.getLogger("sqlcache.cache.sql_provider")


# ---------------------------------------------------------------------------
# Argument checks
# ---------------------------------------------------------------------------


def _check_key(value: str, arg: str = "cache_key") -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"{arg} must be a non-empty string")


def _check_value(value: Any, arg: str = "cache_value") -> None:
    if value is None:
        raise InvalidArgumentError(f"{arg} must not be None")


def _check_expiration(expiration: Expiration | None) -> float:
    """Return *expiration* in seconds, rejecting missing or non-positive values."""
    if isinstance(expiration, timedelta):
        seconds = expiration.total_seconds()
    elif isinstance(expiration, (int, float)) and not isinstance(expiration, bool):
        seconds = float(expiration)
    else:
        raise InvalidArgumentError("expiration must be a timedelta or a number of seconds")
    if seconds <= 0:
        raise InvalidArgumentError("expiration must be positive")
    return seconds


def _to_millis(timestamp: float) -> int:
    # Stored expiry and bound ``now`` must round the same way.
    return round(timestamp * 1000)


def _check_keys(cache_keys: Iterable[str]) -> list[str]:
    if isinstance(cache_keys, str):
        raise InvalidArgumentError("cache_keys must be a collection of keys, not a string")
    keys = list(dict.fromkeys(cache_keys))
    if not keys:
        raise InvalidArgumentError("cache_keys must not be empty")
    for key in keys:
        _check_key(key)
    return keys


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class SQLCachingProvider(CachingProvider):
    """Cache whose entries live in a relational table.

    Args:
        db_provider: Supplies one scoped connection per operation.
        options: Table, sweep and jitter settings.
        name: Namespace of this cache inside the shared table.
        serializer: Encodes values to text; :class:`JsonSerializer` by default.
        clock: Returns the current Unix time in seconds.
    """

    def __init__(
        self,
        db_provider: ConnectionProvider,
        options: SQLCacheOptions | None = None,
        *,
        name: str = DEFAULT_CACHE_NAME,
        serializer: Serializer | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        _check_key(name, "name")
        self._db_provider = db_provider
        self._options = options or SQLCacheOptions()
        self._name = name
        self._serializer = serializer or JsonSerializer()
        self._clock = clock
        self._stats = CacheStats()
        self._connection_name = self._options.connection_name or db_provider.provider_name
        self._dialect = db_provider.dialect(self._connection_name)
        self._sql = build_statements(
            self._dialect, self._options.table_name, self._options.schema_name
        )
        self._initialized = False
        self._last_scan_time = clock()
        self._sweeps: set[asyncio.Task[None]] = set()

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def stats(self) -> CacheStats:
        return self._stats

    @property
    def options(self) -> SQLCacheOptions:
        return self._options

    @property
    def order(self) -> int:
        return self._options.order

    @property
    def max_random_second(self) -> int:
        return self._options.max_random_second

    @property
    def provider_type(self) -> CachingProviderType:
        return CachingProviderType(self._dialect.value)

    @property
    def is_distributed_cache(self) -> bool:
        return True

    @property
    def last_scan_time(self) -> float:
        """Unix time at which the last sweep was started (or construction time)."""
        return self._last_scan_time

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the cache table when ``auto_create_table`` is enabled."""
        if self._initialized or not self._options.auto_create_table:
            return
        async with self._connection() as conn:
            await ensure_cache_table(conn, self._sql)
        self._initialized = True

    async def close(self) -> None:
        """Wait for any sweep still in flight."""
        if self._sweeps:
            await asyncio.gather(*self._sweeps)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def exists(self, cache_key: str) -> bool:
        _check_key(cache_key)
        async with self._connection() as conn:
            count = await conn.fetch_scalar(
                self._sql.exists, (cache_key, self._name, self._now())
            )
        return int(count or 0) >= 1

    async def get(
        self,
        cache_key: str,
        data_retriever: DataRetriever | None = None,
        expiration: Expiration | None = None,
        *,
        value_type: Any = Any,
    ) -> CacheValue[Any]:
        _check_key(cache_key)
        if data_retriever is not None:
            _check_expiration(expiration)

        async with self._connection() as conn:
            payload = await conn.fetch_scalar(
                self._sql.get, (cache_key, self._name, self._now())
            )

        if payload is not None:
            self._stats.on_hit()
            self._log("Cache Hit : cachekey = %s", cache_key, cache_key=cache_key)
            return CacheValue.found(self._serializer.decode(payload, value_type))

        self._stats.on_miss()
        self._log("Cache Missed : cachekey = %s", cache_key, cache_key=cache_key)

        if data_retriever is None:
            return CacheValue.no_value()

        item = data_retriever()
        if inspect.isawaitable(item):
            item = await item
        if item is None:
            return CacheValue.no_value()

        await self.set(cache_key, item, expiration)  # type: ignore[arg-type]
        return CacheValue.found(item)

    async def get_all(
        self, cache_keys: Iterable[str], *, value_type: Any = Any
    ) -> dict[str, CacheValue[Any]]:
        keys = _check_keys(cache_keys)
        async with self._connection() as conn:
            rows = await conn.fetch_all(
                self._sql.get_all(len(keys)), (*keys, self._name, self._now())
            )
        found = self._decode_rows(rows, value_type)
        return {key: found.get(key, CacheValue.no_value()) for key in keys}

    async def get_by_prefix(
        self, prefix: str, *, value_type: Any = Any
    ) -> dict[str, CacheValue[Any]]:
        _check_key(prefix, "prefix")
        async with self._connection() as conn:
            rows = await conn.fetch_all(
                self._sql.get_by_prefix, (like_prefix(prefix), self._name, self._now())
            )
        return self._decode_rows(rows, value_type)

    async def get_count(self, prefix: str = "") -> int:
        async with self._connection() as conn:
            if not prefix.strip():
                count = await conn.fetch_scalar(self._sql.count_all, (self._name,))
            else:
                count = await conn.fetch_scalar(
                    self._sql.count_prefix, (like_prefix(prefix), self._name)
                )
        return int(count or 0)

    async def get_expiration(self, cache_key: str) -> timedelta:
        _check_key(cache_key)
        async with self._connection() as conn:
            expires_at = await conn.fetch_scalar(
                self._sql.get_expiration, (cache_key, self._name, self._now())
            )
        if expires_at is None:
            return timedelta(0)
        return timedelta(milliseconds=max(int(expires_at) - self._now(), 0))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set(self, cache_key: str, cache_value: Any, expiration: Expiration) -> None:
        _check_key(cache_key)
        _check_value(cache_value)
        seconds = _check_expiration(expiration)

        params = (
            cache_key,
            self._name,
            self._serializer.encode(cache_value),
            self._expires_at(self._with_jitter(seconds)),
        )
        async with self._connection() as conn:
            await conn.execute(self._sql.set, params)
            await conn.commit()

        self._clean_expired_entries()

    async def try_set(self, cache_key: str, cache_value: Any, expiration: Expiration) -> bool:
        _check_key(cache_key)
        _check_value(cache_value)
        seconds = _check_expiration(expiration)

        params = (
            cache_key,
            self._name,
            self._serializer.encode(cache_value),
            self._expires_at(self._with_jitter(seconds)),
            self._now(),
        )
        async with self._connection() as conn:
            rows = await conn.execute(self._sql.try_set, params)
            await conn.commit()
        return rows > 0

    async def refresh(self, cache_key: str, cache_value: Any, expiration: Expiration) -> None:
        # Not atomic: a concurrent reader may see a miss between the two steps.
        _check_key(cache_key)
        _check_value(cache_value)
        _check_expiration(expiration)

        await self.remove(cache_key)
        await self.set(cache_key, cache_value, expiration)

    async def set_all(self, values: Mapping[str, Any], expiration: Expiration) -> None:
        seconds = _check_expiration(expiration)
        if not values:
            raise InvalidArgumentError("values must not be empty")
        for key, value in values.items():
            _check_key(key)
            _check_value(value, f"values[{key!r}]")

        # One jitter draw shared by the whole batch.
        expires_at = self._expires_at(self._with_jitter(seconds))
        params = [
            (key, self._name, self._serializer.encode(value), expires_at)
            for key, value in values.items()
        ]
        async with self._connection() as conn:
            await conn.executemany(self._sql.set, params)
            await conn.commit()

        self._clean_expired_entries()

    async def remove(self, cache_key: str) -> None:
        _check_key(cache_key)
        async with self._connection() as conn:
            await conn.execute(self._sql.remove, (cache_key, self._name))
            await conn.commit()

    async def remove_all(self, cache_keys: Iterable[str]) -> None:
        keys = _check_keys(cache_keys)
        async with self._connection() as conn:
            await conn.executemany(self._sql.remove, [(key, self._name) for key in keys])
            await conn.commit()

    async def remove_by_prefix(self, prefix: str) -> None:
        _check_key(prefix, "prefix")
        self._log("RemoveByPrefix : prefix = %s", prefix)
        async with self._connection() as conn:
            await conn.execute(self._sql.remove_by_prefix, (like_prefix(prefix), self._name))
            await conn.commit()

    async def flush(self) -> None:
        async with self._connection() as conn:
            await conn.execute(self._sql.flush, (self._name,))
            await conn.commit()

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    def _clean_expired_entries(self) -> None:
        """Spawn a sweep if the scan interval has elapsed; never waits for it.

        Concurrent callers may both pass the check and each start a sweep.
        Deleting expired rows twice is harmless.
        """
        now = self._clock()
        interval = self._options.expiration_scan_frequency.total_seconds()
        if now <= self._last_scan_time + interval:
            return

        task = asyncio.get_running_loop().create_task(self._purge_expired())
        self._sweeps.add(task)
        task.add_done_callback(self._sweeps.discard)
        self._last_scan_time = now

    async def _purge_expired(self) -> None:
        try:
            async with self._connection() as conn:
                removed = await conn.execute(self._sql.clean_expired, (self._now(),))
                await conn.commit()
        except Exception:
            if self._options.enable_logging:
                logger.exception(
                    "Expired entry sweep failed for cache %s",
                    self._name,
                    extra={"cache": self._name},
                )
            return
        self._log("Swept %d expired entries from %s", removed, self._sql.table)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _connection(self) -> AbstractAsyncContextManager[DatabaseBackend]:
        return self._db_provider.get_connection(self._connection_name)

    def _now(self) -> int:
        return _to_millis(self._clock())

    def _expires_at(self, seconds: float) -> int:
        return _to_millis(self._clock() + seconds)

    def _with_jitter(self, seconds: float) -> float:
        if self._options.max_random_second > 0:
            seconds += random.randint(1, self._options.max_random_second)
        return seconds

    def _decode_rows(
        self, rows: list[dict[str, Any]], value_type: Any
    ) -> dict[str, CacheValue[Any]]:
        result: dict[str, CacheValue[Any]] = {}
        for row in rows:
            result[row["cachekey"]] = CacheValue.found(
                self._serializer.decode(row["cachevalue"], value_type)
            )
            self._stats.on_hit()
        return result

    def _log(self, msg: str, *args: Any, cache_key: str | None = None) -> None:
        if self._options.enable_logging:
            logger.info(msg, *args, extra={"cache": self._name, "cache_key": cache_key})
