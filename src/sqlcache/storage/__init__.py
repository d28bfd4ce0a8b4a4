# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Storage layer -- connection provider, database backends, and cache table SQL."""

from sqlcache.storage.backend import DatabaseBackend
from sqlcache.storage.provider import ConnectionProvider, SQLDatabaseProvider
from sqlcache.storage.query_adapter import adapt_query
from sqlcache.storage.schema import CacheStatements, build_statements, ensure_cache_table

__all__ = [
    "CacheStatements",
    "ConnectionProvider",
    "DatabaseBackend",
    "SQLDatabaseProvider",
    "adapt_query",
    "build_statements",
    "ensure_cache_table",
]
