# src/cache/result_cache.py - v1
"""Bounded TTL key/value store with oldest-insertion eviction.

Expiry is lazy on ``get`` (delete-and-miss) and proactive through
``sweep()``. A sweep snapshots the entries under the lock, finds expired
keys without holding it, then deletes them in small locked batches,
re-checking each entry so a concurrent overwrite is never removed.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from blueprints_rag.cache.models import CacheEntry

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000
SWEEP_BATCH_SIZE = 64


class ResultCache:
    """In-memory result cache.

    Args:
        max_entries: Capacity; storing beyond it evicts the oldest-inserted entry.
        default_ttl: TTL in seconds applied when ``store`` gets none (None = no expiry).
        clock: Time source returning seconds, injectable for tests.
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        default_ttl: float | None = None,
        clock: Callable[[], float] = time.time,
        name: str = "cache",
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be > 0")
        self.name = name
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._clock = clock
        # dict preserves insertion order; overwrites re-insert at the end
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expired = 0

    def store(
        self,
        key: str,
        value: Any,
        ttl: float | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        now = self._clock()
        entry = CacheEntry(
            key=key,
            payload=value,
            metadata=metadata or {},
            created_at=now,
            last_accessed=now,
            ttl=ttl if ttl is not None else self.default_ttl,
        )
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            while len(self._entries) > self.max_entries:
                oldest = next(iter(self._entries))
                del self._entries[oldest]
                self.evictions += 1
                logger.debug("Evicted %s from %s", oldest, self.name)

    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        entry = self.get_entry(key)
        return None if entry is None else entry.payload

    def get_entry(self, key: str) -> CacheEntry | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            if entry.is_expired(now):
                del self._entries[key]
                self.expired += 1
                self.misses += 1
                return None
            entry.last_accessed = now
            entry.access_count += 1
            self.hits += 1
            return entry

    def contains(self, key: str) -> bool:
        """Membership test that neither counts nor touches the entry."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(now)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
            return count

    def sweep(self) -> int:
        """Delete every expired entry. Returns the number removed."""
        with self._lock:
            snapshot = list(self._entries.items())
        now = self._clock()
        candidates = [key for key, entry in snapshot if entry.is_expired(now)]

        removed = 0
        for start in range(0, len(candidates), SWEEP_BATCH_SIZE):
            batch = candidates[start : start + SWEEP_BATCH_SIZE]
            with self._lock:
                for key in batch:
                    entry = self._entries.get(key)
                    if entry is not None and entry.is_expired(now):
                        del self._entries[key]
                        self.expired += 1
                        removed += 1
        return removed

    def entries(self) -> list[CacheEntry]:
        """Snapshot of live entries in insertion order."""
        now = self._clock()
        with self._lock:
            return [e for e in self._entries.values() if not e.is_expired(now)]

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
