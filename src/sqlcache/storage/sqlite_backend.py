# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""SQLite implementation of the abstract :class:`DatabaseBackend`.

Wraps a single :mod:`aiosqlite` connection and exposes the uniform query
interface used by the cache engine.
"""

from __future__ import annotations

from typing import Any

import aiosqlite

from sqlcache.core.exceptions import CacheConnectionError
from sqlcache.storage.backend import DatabaseBackend


class SQLiteBackend(DatabaseBackend):
    """Async SQLite backend backed by an :class:`aiosqlite.Connection`."""

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection

    # ------------------------------------------------------------------
    # Factory
    # ------------------------------------------------------------------

    @classmethod
    async def connect(cls, db_path: str, *, timeout: float = 5.0) -> SQLiteBackend:
        """Open a new connection to the database file at *db_path*.

        ``LIKE`` is made case-sensitive so prefix matching behaves the same
        as on PostgreSQL.

        Raises:
            CacheConnectionError: If the database cannot be opened.
        """
        try:
            conn = await aiosqlite.connect(db_path, timeout=timeout)
        except Exception as exc:
            msg = f"Failed to open SQLite database at {db_path}: {exc}"
            raise CacheConnectionError(msg) from exc

        conn.row_factory = aiosqlite.Row
        try:
            await conn.execute("PRAGMA case_sensitive_like=ON")
        except Exception as exc:
            await conn.close()
            msg = f"Failed to configure SQLite connection to {db_path}: {exc}"
            raise CacheConnectionError(msg) from exc
        return cls(conn)

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    async def execute(self, query: str, params: tuple[Any, ...] | None = None) -> int:
        if params:
            cursor = await self._conn.execute(query, params)
        else:
            cursor = await self._conn.execute(query)
        return cursor.rowcount

    async def executemany(
        self,
        query: str,
        params_seq: list[tuple[Any, ...]],
    ) -> None:
        await self._conn.executemany(query, params_seq)

    async def fetch_one(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> dict[str, Any] | None:
        cursor = await self._conn.execute(query, params or ())
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    async def fetch_all(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        cursor = await self._conn.execute(query, params or ())
        rows = await cursor.fetchall()
        return [dict(r) for r in rows]

    async def fetch_scalar(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> Any:
        cursor = await self._conn.execute(query, params or ())
        row = await cursor.fetchone()
        if row is None:
            return None
        return row[0]

    # ------------------------------------------------------------------
    # Transaction / connection lifecycle
    # ------------------------------------------------------------------

    async def commit(self) -> None:
        await self._conn.commit()

    async def close(self) -> None:
        await self._conn.close()

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    def backend_name(self) -> str:
        return "sqlite"
