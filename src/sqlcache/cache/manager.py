# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Process-wide registry of caching providers, one per namespace.

All providers built here share one :class:`SQLDatabaseProvider` (and so
one physical table) created from application settings.  Each namespace
still owns its own statistics and sweep cursor.
"""

from __future__ import annotations

import logging

from sqlcache.cache.options import SQLCacheOptions
from sqlcache.cache.sql_provider import SQLCachingProvider
from sqlcache.storage.provider import SQLDatabaseProvider

logger = logging.getLogger("sqlcache.cache.manager")

# Module-level registry
_db_provider: SQLDatabaseProvider | None = None
_caches: dict[str, SQLCachingProvider] = {}


def _get_db_provider() -> SQLDatabaseProvider:
    global _db_provider
    if _db_provider is None:
        from sqlcache.core.config import get_settings

        _db_provider = SQLDatabaseProvider.from_settings(get_settings())
    return _db_provider


async def get_cache(name: str | None = None) -> SQLCachingProvider:
    """Return the initialized :class:`SQLCachingProvider` for namespace *name*.

    Creates it on first call using application settings; ``None`` means
    the configured ``cache_name``.
    """
    from sqlcache.core.config import get_settings

    settings = get_settings()
    namespace = name or settings.cache_name
    cache = _caches.get(namespace)
    if cache is None:
        db_provider = _get_db_provider()
        cache = SQLCachingProvider(
            db_provider,
            SQLCacheOptions.from_settings(settings),
            name=namespace,
        )
        await cache.initialize()
        _caches[namespace] = cache
        logger.debug("Created cache %r on backend %s", namespace, db_provider.provider_name)
    return cache


def get_caches() -> list[SQLCachingProvider]:
    """Return every registered cache ordered by its ``order`` option."""
    return sorted(_caches.values(), key=lambda c: c.order)


async def close_caches() -> None:
    """Wait for pending sweeps of every cache and clear the registry."""
    for cache in list(_caches.values()):
        await cache.close()
    reset_caches()


def reset_caches() -> None:
    """Reset the registry (useful for testing)."""
    global _db_provider
    _caches.clear()
    _db_provider = None
