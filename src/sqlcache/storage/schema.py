# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Cache table definition and the parameterized statements run against it.

Every statement is written with ``?`` placeholders; the PostgreSQL
backend rewrites them on the fly.  Bind order for each statement is
documented next to it.  ``now`` is always a Unix timestamp in
milliseconds supplied by the caller.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from sqlcache.core.constants import MAX_KEY_LENGTH, MAX_NAME_LENGTH, Dialect
from sqlcache.core.exceptions import ConfigurationError
from sqlcache.storage.backend import DatabaseBackend

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

# Escape character used by every LIKE clause.
LIKE_ESCAPE = "\\"

_CREATE_TABLE = {
    Dialect.SQLITE: """
CREATE TABLE IF NOT EXISTS {table} (
    cachekey TEXT NOT NULL,
    name TEXT NOT NULL,
    cachevalue TEXT NOT NULL,
    expiration INTEGER NOT NULL,
    PRIMARY KEY (cachekey, name)
)
""",
    Dialect.POSTGRES: f"""
CREATE TABLE IF NOT EXISTS {{table}} (
    cachekey VARCHAR({MAX_KEY_LENGTH}) NOT NULL,
    name VARCHAR({MAX_NAME_LENGTH}) NOT NULL,
    cachevalue TEXT NOT NULL,
    expiration BIGINT NOT NULL,
    PRIMARY KEY (cachekey, name)
)
""",
}


def _check_identifier(value: str, what: str) -> str:
    if not _IDENTIFIER.match(value):
        msg = f"Invalid {what} {value!r}: expected letters, digits and underscores only."
        raise ConfigurationError(msg)
    return value


def like_prefix(prefix: str) -> str:
    """Build a ``LIKE`` pattern matching keys that start with *prefix* literally."""
    escaped = (
        prefix.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", f"{LIKE_ESCAPE}%")
        .replace("_", f"{LIKE_ESCAPE}_")
    )
    return f"{escaped}%"


@dataclass(frozen=True, slots=True)
class CacheStatements:
    """SQL for every cache operation against one physical table."""

    dialect: Dialect
    table_name: str
    schema_name: str = ""

    @property
    def table(self) -> str:
        if self.schema_name:
            return f"{self.schema_name}.{self.table_name}"
        return self.table_name

    @property
    def create_table(self) -> str:
        return _CREATE_TABLE[self.dialect].format(table=self.table)

    @property
    def create_index(self) -> str:
        index = f"ix_{self.table_name}_expiration"
        if self.dialect is Dialect.SQLITE and self.schema_name:
            # SQLite qualifies the index, not the table.
            index = f"{self.schema_name}.{index}"
            return f"CREATE INDEX IF NOT EXISTS {index} ON {self.table_name} (expiration)"
        return f"CREATE INDEX IF NOT EXISTS {index} ON {self.table} (expiration)"

    # (cachekey, name, now)
    @property
    def exists(self) -> str:
        return (
            f"SELECT COUNT(*) FROM {self.table} "
            "WHERE cachekey = ? AND name = ? AND expiration > ?"
        )

    # (cachekey, name, now)
    @property
    def get(self) -> str:
        return (
            f"SELECT cachevalue FROM {self.table} "
            "WHERE cachekey = ? AND name = ? AND expiration > ?"
        )

    # (cachekey, name, now)
    @property
    def get_expiration(self) -> str:
        return (
            f"SELECT expiration FROM {self.table} "
            "WHERE cachekey = ? AND name = ? AND expiration > ?"
        )

    # (cachekey, name, cachevalue, expiration)
    @property
    def set(self) -> str:
        return (
            f"INSERT INTO {self.table} (cachekey, name, cachevalue, expiration) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT (cachekey, name) DO UPDATE SET "
            "cachevalue = excluded.cachevalue, expiration = excluded.expiration"
        )

    # (cachekey, name, cachevalue, expiration, now)
    # An expired row is taken over; a live one is left alone.
    @property
    def try_set(self) -> str:
        return (
            f"INSERT INTO {self.table} AS c (cachekey, name, cachevalue, expiration) "
            "VALUES (?, ?, ?, ?) "
            "ON CONFLICT (cachekey, name) DO UPDATE SET "
            "cachevalue = excluded.cachevalue, expiration = excluded.expiration "
            "WHERE c.expiration <= ?"
        )

    # (cachekey, name)
    @property
    def remove(self) -> str:
        return f"DELETE FROM {self.table} WHERE cachekey = ? AND name = ?"

    # (pattern, name)
    @property
    def remove_by_prefix(self) -> str:
        return (
            f"DELETE FROM {self.table} "
            f"WHERE cachekey LIKE ? ESCAPE '{LIKE_ESCAPE}' AND name = ?"
        )

    # (name,)
    @property
    def flush(self) -> str:
        return f"DELETE FROM {self.table} WHERE name = ?"

    # (now,) -- every namespace
    @property
    def clean_expired(self) -> str:
        return f"DELETE FROM {self.table} WHERE expiration <= ?"

    # (cachekey_1, ..., cachekey_n, name, now)
    def get_all(self, key_count: int) -> str:
        placeholders = ", ".join(["?"] * key_count)
        return (
            f"SELECT cachekey, cachevalue FROM {self.table} "
            f"WHERE cachekey IN ({placeholders}) AND name = ? AND expiration > ?"
        )

    # (pattern, name, now)
    @property
    def get_by_prefix(self) -> str:
        return (
            f"SELECT cachekey, cachevalue FROM {self.table} "
            f"WHERE cachekey LIKE ? ESCAPE '{LIKE_ESCAPE}' AND name = ? AND expiration > ?"
        )

    # (name,)
    @property
    def count_all(self) -> str:
        return f"SELECT COUNT(*) FROM {self.table} WHERE name = ?"

    # (pattern, name)
    @property
    def count_prefix(self) -> str:
        return (
            f"SELECT COUNT(*) FROM {self.table} "
            f"WHERE cachekey LIKE ? ESCAPE '{LIKE_ESCAPE}' AND name = ?"
        )


def build_statements(
    dialect: Dialect | str, table_name: str, schema_name: str = ""
) -> CacheStatements:
    """Return the statement set for *dialect* against ``schema.table``.

    Raises:
        ConfigurationError: If the dialect is unknown or an identifier is invalid.
    """
    try:
        chosen = Dialect(dialect)
    except ValueError as exc:
        msg = f"Unknown SQL dialect: {dialect!r}. Expected 'sqlite' or 'postgres'."
        raise ConfigurationError(msg) from exc
    _check_identifier(table_name, "table name")
    if schema_name:
        _check_identifier(schema_name, "schema name")
    return CacheStatements(chosen, table_name, schema_name)


async def ensure_cache_table(conn: DatabaseBackend, statements: CacheStatements) -> None:
    """Create the cache table and its expiry index if they do not exist."""
    if statements.dialect is Dialect.SQLITE:
        # Journal mode persists on the database file.
        await conn.execute("PRAGMA journal_mode=WAL")
    await conn.execute(statements.create_table)
    await conn.execute(statements.create_index)
    await conn.commit()
    logger.debug("Ensured cache table %s", statements.table)
