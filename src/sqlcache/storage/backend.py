# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Abstract connection handle for pluggable storage engines.

Both the SQLite (aiosqlite) and PostgreSQL (asyncpg) backends implement
this interface so that the cache engine can remain backend-agnostic.
Each instance wraps exactly one connection, scoped to one cache operation.
"""

from __future__ import annotations

import abc
from typing import Any


class DatabaseBackend(abc.ABC):
    """Abstract base class for async database connection handles."""

    # ------------------------------------------------------------------
    # Query execution
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def execute(self, query: str, params: tuple[Any, ...] | None = None) -> int:
        """Execute a single SQL statement.

        Args:
            query: SQL query string with ``?`` placeholders.
            params: Optional tuple of bind parameters.

        Returns:
            The number of rows affected by the statement.
        """

    @abc.abstractmethod
    async def executemany(
        self,
        query: str,
        params_seq: list[tuple[Any, ...]],
    ) -> None:
        """Execute a SQL statement for each parameter set in *params_seq*.

        Args:
            query: SQL query string with ``?`` placeholders.
            params_seq: Sequence of parameter tuples.
        """

    @abc.abstractmethod
    async def fetch_one(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> dict[str, Any] | None:
        """Execute a query and return the first row as a dict, or ``None``."""

    @abc.abstractmethod
    async def fetch_all(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> list[dict[str, Any]]:
        """Execute a query and return all rows as a list of dicts."""

    @abc.abstractmethod
    async def fetch_scalar(
        self, query: str, params: tuple[Any, ...] | None = None
    ) -> Any:
        """Execute a query and return the first column of the first row, or ``None``."""

    # ------------------------------------------------------------------
    # Transaction / connection lifecycle
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def commit(self) -> None:
        """Commit the current transaction (no-op for auto-commit drivers)."""

    @abc.abstractmethod
    async def close(self) -> None:
        """Release the underlying connection."""

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    @property
    @abc.abstractmethod
    def backend_name(self) -> str:
        """Return ``'sqlite'`` or ``'postgres'``."""
