# src/cache/models.py - v2
"""Cache domain models: CacheEntry, NamespaceStats, CacheError."""

from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, Field


class CacheError(Exception):
    """Raised by cache internals; callers treat it as a miss."""


class CacheEntry(BaseModel):
    """Single cache entry.

    ``ttl`` (seconds), when set, is the only expiry authority: the entry is
    expired once ``now - created_at > ttl``. Entries without a ttl leave the
    cache only through capacity eviction or an explicit delete/clear.
    """

    key: str
    payload: Any
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: float = Field(default_factory=time.time)
    last_accessed: float = Field(default_factory=time.time)
    access_count: int = 0
    ttl: float | None = None

    def is_expired(self, now: float) -> bool:
        if self.ttl is None:
            return False
        return now - self.created_at > self.ttl

    def age(self, now: float) -> float:
        return now - self.created_at


class NamespaceStats(BaseModel):
    """Counters reported per cache namespace."""

    name: str
    entries: int = 0
    max_entries: int = 0
    ttl_s: float | None = None
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expired: int = 0
    avg_processing_time_ms: float = 0.0
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0
