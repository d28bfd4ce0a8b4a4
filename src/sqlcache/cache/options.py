# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Per-cache engine options."""

from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, ConfigDict, Field

from sqlcache.core.config import Settings
from sqlcache.core.constants import DEFAULT_SCAN_FREQUENCY, DEFAULT_TABLE_NAME


class SQLCacheOptions(BaseModel):
    """Options for one :class:`~sqlcache.cache.sql_provider.SQLCachingProvider`.

    Attributes:
        schema_name: Optional schema qualifying the table.
        table_name: Physical table shared by every namespace.
        expiration_scan_frequency: Minimum interval between two sweeps of
            expired rows.
        enable_logging: Log hits, misses, prefix removals and sweep failures.
        order: Priority among several providers; lower runs first.
        max_random_second: Upper bound of the random whole seconds added to
            every expiration.  ``0`` disables jitter.
        auto_create_table: Create the table on :meth:`initialize`.
        connection_name: Logical backend to use; defaults to the
            connection provider's own name.
    """

    model_config = ConfigDict(frozen=True)

    schema_name: str = ""
    table_name: str = DEFAULT_TABLE_NAME
    expiration_scan_frequency: timedelta = timedelta(seconds=DEFAULT_SCAN_FREQUENCY)
    enable_logging: bool = False
    order: int = 0
    max_random_second: int = Field(default=0, ge=0)
    auto_create_table: bool = True
    connection_name: str | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> SQLCacheOptions:
        return cls(
            schema_name=settings.schema_name,
            table_name=settings.table_name,
            expiration_scan_frequency=timedelta(seconds=settings.expiration_scan_frequency),
            enable_logging=settings.enable_logging,
            order=settings.order,
            max_random_second=settings.max_random_second,
            auto_create_table=settings.auto_create_table,
        )
