# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Abstract caching provider interface with TTL support."""

from __future__ import annotations

import abc
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import timedelta
from typing import Any

from sqlcache.cache.stats import CacheStats
from sqlcache.cache.value import CacheValue

# A TTL as a timedelta or a number of seconds.
Expiration = timedelta | int | float

DataRetriever = Callable[[], Any] | Callable[[], Awaitable[Any]]


class CachingProvider(abc.ABC):
    """Abstract base class for caching providers.

    Every operation is scoped to the provider's :attr:`name`, so several
    providers can share one physical store without seeing each other's keys.
    Reads never return an entry whose expiration has passed.
    """

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Namespace of this cache."""

    @property
    @abc.abstractmethod
    def stats(self) -> CacheStats:
        """Hit/miss counters of this instance."""

    @abc.abstractmethod
    async def exists(self, cache_key: str) -> bool:
        """Return ``True`` if a live entry exists for *cache_key*."""

    @abc.abstractmethod
    async def get(
        self,
        cache_key: str,
        data_retriever: DataRetriever | None = None,
        expiration: Expiration | None = None,
        *,
        value_type: Any = Any,
    ) -> CacheValue[Any]:
        """Read *cache_key*, filling it from *data_retriever* on a miss.

        Returns:
            ``CacheValue.found(value)`` on a hit or a successful fill,
            otherwise ``CacheValue.no_value()``.
        """

    @abc.abstractmethod
    async def set(self, cache_key: str, cache_value: Any, expiration: Expiration) -> None:
        """Store *cache_value* under *cache_key*, replacing any existing entry."""

    @abc.abstractmethod
    async def try_set(self, cache_key: str, cache_value: Any, expiration: Expiration) -> bool:
        """Store only if no live entry exists; return ``True`` if stored."""

    @abc.abstractmethod
    async def refresh(self, cache_key: str, cache_value: Any, expiration: Expiration) -> None:
        """Remove then set *cache_key*."""

    @abc.abstractmethod
    async def remove(self, cache_key: str) -> None:
        """Delete *cache_key*; missing keys are ignored."""

    @abc.abstractmethod
    async def set_all(self, values: Mapping[str, Any], expiration: Expiration) -> None:
        """Store every item of *values* with the same expiration."""

    @abc.abstractmethod
    async def get_all(
        self, cache_keys: Iterable[str], *, value_type: Any = Any
    ) -> dict[str, CacheValue[Any]]:
        """Read several keys; every requested key appears in the result."""

    @abc.abstractmethod
    async def get_by_prefix(
        self, prefix: str, *, value_type: Any = Any
    ) -> dict[str, CacheValue[Any]]:
        """Read every live entry whose key starts with *prefix*."""

    @abc.abstractmethod
    async def remove_all(self, cache_keys: Iterable[str]) -> None:
        """Delete several keys."""

    @abc.abstractmethod
    async def remove_by_prefix(self, prefix: str) -> None:
        """Delete every entry whose key starts with *prefix*."""

    @abc.abstractmethod
    async def flush(self) -> None:
        """Delete every entry of this namespace."""

    @abc.abstractmethod
    async def get_count(self, prefix: str = "") -> int:
        """Return the number of stored rows, expired ones included."""

    @abc.abstractmethod
    async def get_expiration(self, cache_key: str) -> timedelta:
        """Return the remaining lifetime of *cache_key* (zero if absent)."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release any resources held by the provider."""
