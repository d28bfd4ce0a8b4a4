# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Connection provider: one scoped database connection per cache operation.

Logical backend names map to connection strings.  Strings may be
templates (``postgresql://{user}:{password}@{host}/cache``) filled from
configuration when the provider is built.  Supported schemes:

* ``sqlite:///relative/path.db`` / ``sqlite:////absolute/path.db``
* ``postgres://...`` / ``postgresql://...`` (requires ``asyncpg``)

No pooling happens here; every :meth:`get_connection` opens a fresh
connection and closes it when the ``async with`` block exits, whatever
the outcome.
"""

from __future__ import annotations

import abc
import contextlib
import logging
from collections.abc import AsyncIterator, Mapping
from contextlib import AbstractAsyncContextManager

from sqlcache.core.config import Settings
from sqlcache.core.constants import DEFAULT_CACHE_NAME, Dialect
from sqlcache.core.exceptions import CacheConnectionError, ConfigurationError
from sqlcache.storage.backend import DatabaseBackend

logger = logging.getLogger(__name__)

_SQLITE_PREFIX = "sqlite:///"
_POSTGRES_SCHEMES = ("postgres://", "postgresql://")


class ConnectionProvider(abc.ABC):
    """Supplies scoped connection handles for named backends."""

    @abc.abstractmethod
    def get_connection(
        self, name: str | None = None
    ) -> AbstractAsyncContextManager[DatabaseBackend]:
        """Return an async context manager yielding a fresh connection.

        Args:
            name: Logical backend name.  ``None`` means :attr:`provider_name`.

        Raises:
            CacheConnectionError: On entry, if *name* is unknown or the
                connection cannot be established.
        """

    @abc.abstractmethod
    def dialect(self, name: str | None = None) -> Dialect:
        """Return the SQL dialect spoken by the named backend."""

    @property
    @abc.abstractmethod
    def provider_name(self) -> str:
        """Return the default logical backend name."""


def render_connection_string(template: str, params: Mapping[str, str] | None = None) -> str:
    """Fill ``{placeholders}`` in *template* from *params*.

    Raises:
        ConfigurationError: If a placeholder has no value.
    """
    if not params:
        return template
    try:
        return template.format(**params)
    except (KeyError, IndexError) as exc:
        msg = f"Connection string template is missing parameter {exc}"
        raise ConfigurationError(msg) from exc


def parse_dialect(connection_string: str) -> Dialect:
    """Infer the dialect from the connection-string scheme.

    Raises:
        ConfigurationError: If the scheme is not supported.
    """
    if connection_string.startswith(_SQLITE_PREFIX):
        return Dialect.SQLITE
    if connection_string.startswith(_POSTGRES_SCHEMES):
        return Dialect.POSTGRES
    scheme = connection_string.split(":", 1)[0]
    msg = (
        f"Unsupported connection string scheme {scheme!r}. "
        "Expected 'sqlite:///' or 'postgresql://'."
    )
    raise ConfigurationError(msg)


class SQLDatabaseProvider(ConnectionProvider):
    """Opens SQLite or PostgreSQL connections from configured strings.

    Args:
        connection_string: Connection string (or template) of the default
            backend, registered under *name*.
        name: Logical name of the default backend.
        params: Values for template placeholders.
        connections: Additional logical backends, name -> connection string.
        timeout: Connect / busy timeout in seconds handed to the driver.
    """

    def __init__(
        self,
        connection_string: str,
        *,
        name: str = DEFAULT_CACHE_NAME,
        params: Mapping[str, str] | None = None,
        connections: Mapping[str, str] | None = None,
        timeout: float = 5.0,
    ) -> None:
        self._name = name
        self._timeout = timeout
        self._targets: dict[str, tuple[Dialect, str]] = {}

        templates = {name: connection_string, **(connections or {})}
        for backend_name, template in templates.items():
            dsn = render_connection_string(template, params)
            self._targets[backend_name] = (parse_dialect(dsn), dsn)

    @classmethod
    def from_settings(cls, settings: Settings) -> SQLDatabaseProvider:
        """Build a provider from application :class:`Settings`."""
        return cls(
            settings.connection_string,
            name=settings.cache_name,
            params=settings.connection_params,
            connections=settings.connections,
        )

    # ------------------------------------------------------------------
    # ConnectionProvider interface
    # ------------------------------------------------------------------

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def backend_names(self) -> list[str]:
        """Return every registered logical backend name."""
        return sorted(self._targets)

    def dialect(self, name: str | None = None) -> Dialect:
        return self._resolve(name)[0]

    @contextlib.asynccontextmanager
    async def get_connection(self, name: str | None = None) -> AsyncIterator[DatabaseBackend]:
        dialect, dsn = self._resolve(name)
        backend = await self._open(dialect, dsn)
        try:
            yield backend
        finally:
            await backend.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _resolve(self, name: str | None) -> tuple[Dialect, str]:
        target = name or self._name
        try:
            return self._targets[target]
        except KeyError:
            msg = f"Unknown database backend: {target!r}. Known: {self.backend_names}"
            raise CacheConnectionError(msg) from None

    async def _open(self, dialect: Dialect, dsn: str) -> DatabaseBackend:
        if dialect is Dialect.SQLITE:
            from sqlcache.storage.sqlite_backend import SQLiteBackend

            return await SQLiteBackend.connect(dsn[len(_SQLITE_PREFIX):], timeout=self._timeout)

        from sqlcache.storage.postgres import PostgresDatabase

        return await PostgresDatabase.connect(dsn, timeout=self._timeout)
