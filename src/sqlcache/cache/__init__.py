# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Relational-table caching layer."""

from sqlcache.cache.base import CachingProvider
from sqlcache.cache.manager import close_caches, get_cache
from sqlcache.cache.options import SQLCacheOptions
from sqlcache.cache.sql_provider import SQLCachingProvider
from sqlcache.cache.stats import CacheStats
from sqlcache.cache.value import CacheValue

__all__ = [
    "CacheStats",
    "CacheValue",
    "CachingProvider",
    "SQLCacheOptions",
    "SQLCachingProvider",
    "close_caches",
    "get_cache",
]
