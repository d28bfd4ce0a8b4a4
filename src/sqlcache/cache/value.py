# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Result wrapper distinguishing a cached value from a miss."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CacheValue(Generic[T]):
    """Either ``found(value)`` or ``no_value()``.

    Check :attr:`has_value` rather than comparing :attr:`value` to
    ``None``; a miss and a stored ``None`` would otherwise look alike.
    """

    value: T | None = None
    has_value: bool = False

    @classmethod
    def found(cls, value: T) -> CacheValue[T]:
        return cls(value=value, has_value=True)

    @classmethod
    def no_value(cls) -> CacheValue[T]:
        return cls()

    @property
    def is_null(self) -> bool:
        return self.value is None

    def __repr__(self) -> str:
        if self.has_value:
            return f"CacheValue.found({self.value!r})"
        return "CacheValue.no_value()"
