# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Custom exception hierarchy for sqlcache."""


class SqlCacheError(Exception):
    """Base exception for all sqlcache errors."""


class ConfigurationError(SqlCacheError):
    """Invalid or missing configuration."""


class InvalidArgumentError(SqlCacheError, ValueError):
    """A cache operation was called with an unusable argument."""


class CacheConnectionError(SqlCacheError, ConnectionError):
    """A backend connection could not be established."""


class SerializationError(SqlCacheError):
    """A cache value could not be encoded or decoded."""
