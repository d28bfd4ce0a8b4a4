# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""sqlcache - key-value cache backed by a relational table."""

__version__ = "0.1.0"

from sqlcache.cache import (
    CacheStats,
    CacheValue,
    CachingProvider,
    SQLCacheOptions,
    SQLCachingProvider,
    close_caches,
    get_cache,
)
from sqlcache.core.exceptions import (
    CacheConnectionError,
    ConfigurationError,
    InvalidArgumentError,
    SerializationError,
    SqlCacheError,
)
from sqlcache.storage.provider import ConnectionProvider, SQLDatabaseProvider

__all__ = [
    "CacheConnectionError",
    "CacheStats",
    "CacheValue",
    "CachingProvider",
    "ConfigurationError",
    "ConnectionProvider",
    "InvalidArgumentError",
    "SQLCacheOptions",
    "SQLCachingProvider",
    "SQLDatabaseProvider",
    "SerializationError",
    "SqlCacheError",
    "__version__",
    "close_caches",
    "get_cache",
]
