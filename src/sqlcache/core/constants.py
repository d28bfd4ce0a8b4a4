# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Enumerations and default values."""

from enum import StrEnum


class CachingProviderType(StrEnum):
    SQLITE = "sqlite"
    POSTGRES = "postgres"


class Dialect(StrEnum):
    SQLITE = "sqlite"
    POSTGRES = "postgres"


DEFAULT_CACHE_NAME = "default"
DEFAULT_TABLE_NAME = "sqlcache"
DEFAULT_CONNECTION_STRING = "sqlite:///sqlcache.db"

# Seconds between two sweeps of expired rows.
DEFAULT_SCAN_FREQUENCY = 600

# Column sizes used when creating the table on PostgreSQL.
MAX_KEY_LENGTH = 256
MAX_NAME_LENGTH = 128
