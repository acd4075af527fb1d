# src/rag/index/relevance_queue.py - v1
"""Best-first queue of blueprint ids ordered by relevance.

Re-pushing an id supersedes its earlier entry: the heap keeps the old
tuple, but ``ranked`` skips any entry whose version is no longer current.
Compaction drops superseded tuples once they outnumber the live ones.
"""

from __future__ import annotations

import threading

from blueprints_rag.rag.index.priority_queue import PriorityQueue


class RelevanceQueue:
    def __init__(self) -> None:
        self._queue: PriorityQueue[tuple[str, int]] = PriorityQueue(highest_first=True)
        self._versions: dict[str, int] = {}
        self._relevance: dict[str, float] = {}
        self._lock = threading.Lock()

    def push(self, blueprint_id: str, relevance: float) -> None:
        with self._lock:
            version = self._versions.get(blueprint_id, 0) + 1
            self._versions[blueprint_id] = version
            self._relevance[blueprint_id] = relevance
            self._queue.push((blueprint_id, version), relevance)
            if len(self._queue) > 2 * len(self._relevance) + 16:
                self._compact_locked()

    def remove(self, blueprint_id: str) -> bool:
        with self._lock:
            if self._relevance.pop(blueprint_id, None) is None:
                return False
            self._versions[blueprint_id] = self._versions.get(blueprint_id, 0) + 1
            return True

    def ranked(self, limit: int) -> list[tuple[str, float]]:
        """Top ``limit`` (id, relevance) pairs, drained from a snapshot."""
        with self._lock:
            snapshot = self._queue.copy()
            versions = dict(self._versions)
        out: list[tuple[str, float]] = []
        while snapshot and len(out) < limit:
            (blueprint_id, version), relevance = snapshot.pop()
            if versions.get(blueprint_id) == version:
                out.append((blueprint_id, relevance))
        return out

    def relevance(self, blueprint_id: str) -> float | None:
        return self._relevance.get(blueprint_id)

    def _compact_locked(self) -> None:
        fresh: PriorityQueue[tuple[str, int]] = PriorityQueue(highest_first=True)
        for blueprint_id, relevance in self._relevance.items():
            fresh.push((blueprint_id, self._versions[blueprint_id]), relevance)
        self._queue = fresh

    def __len__(self) -> int:
        return len(self._relevance)
