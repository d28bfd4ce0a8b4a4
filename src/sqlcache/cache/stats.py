# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Per-cache hit/miss counters."""

from __future__ import annotations

import threading


class CacheStats:
    """Simple hit/miss counter, safe to bump from several threads."""

    __slots__ = ("_lock", "hits", "misses")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.hits: int = 0
        self.misses: int = 0

    def on_hit(self, count: int = 1) -> None:
        with self._lock:
            self.hits += count

    def on_miss(self, count: int = 1) -> None:
        with self._lock:
            self.misses += count

    def reset(self) -> None:
        with self._lock:
            self.hits = 0
            self.misses = 0

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        return self.hits / self.total if self.total else 0.0

    def to_dict(self) -> dict[str, object]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "total": self.total,
            "hit_rate": round(self.hit_rate, 4),
        }
