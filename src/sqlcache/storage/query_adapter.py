# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Query parameter adapter for cross-database compatibility.

SQLite uses ``?`` placeholders while PostgreSQL uses ``$1, $2, ...``
positional parameters.  The :func:`adapt_query` function rewrites a
statement written with ``?`` markers into the target dialect.
"""

from __future__ import annotations


def adapt_query(query: str, dialect: str) -> str:
    """Rewrite ``?`` parameter placeholders for the target *dialect*.

    Args:
        query: SQL query with ``?`` positional placeholders.
        dialect: ``"sqlite"`` (no-op) or ``"postgres"`` (``$N``).

    Returns:
        The rewritten query string.

    Raises:
        ValueError: If *dialect* is not recognised.
    """
    if dialect == "sqlite":
        return query

    if dialect == "postgres":
        return _question_to_dollar(query)

    msg = f"Unknown SQL dialect: {dialect!r}. Expected 'sqlite' or 'postgres'."
    raise ValueError(msg)


def _question_to_dollar(query: str) -> str:
    """Replace each ``?`` outside of single-quoted strings with ``$N``.

    * ``WHERE cachekey = ?``  -> ``WHERE cachekey = $1``
    * ``VALUES (?, ?)`` -> ``VALUES ($1, $2)``
    * ``?`` inside quoted literals (``ESCAPE '?'``) is left untouched,
      and doubled quotes (``''``) do not end the literal.
    """
    result: list[str] = []
    counter = 0
    in_string = False

    i = 0
    while i < len(query):
        ch = query[i]

        if ch == "'" and not in_string:
            in_string = True
            result.append(ch)
        elif ch == "'" and in_string:
            if i + 1 < len(query) and query[i + 1] == "'":
                result.append("''")
                i += 2
                continue
            in_string = False
            result.append(ch)
        elif ch == "?" and not in_string:
            counter += 1
            result.append(f"${counter}")
        else:
            result.append(ch)

        i += 1

    return "".join(result)
