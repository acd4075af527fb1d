# src/rag/index/hybrid_index.py - v1
"""Hybrid search index: prefix trie, 2-D spatial index, relevance queue
and an ordered pattern index, held together per service instance.

Each structure has its own lock; an upsert touches them one after the
other, so a concurrent query may briefly see a blueprint in one structure
and not yet in another. The index is derived state and can always be
rebuilt from the blueprints.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

from blueprints_rag.rag.index.ordered_map import OrderedMap
from blueprints_rag.rag.index.prefix_index import PrefixIndex
from blueprints_rag.rag.index.relevance_queue import RelevanceQueue
from blueprints_rag.rag.index.spatial_index import Point, SpatialIndex
from blueprints_rag.rag.models import IndexEntry

logger = logging.getLogger(__name__)


class HybridIndex:
    def __init__(self, spatial_rebuild_threshold: int = 32) -> None:
        self.trie = PrefixIndex()
        self.spatial = SpatialIndex(rebuild_threshold=spatial_rebuild_threshold)
        self.relevance = RelevanceQueue()
        self.patterns: OrderedMap[set[str]] = OrderedMap()
        self._entries: dict[str, IndexEntry] = {}
        self._entries_lock = threading.Lock()
        self._trie_lock = threading.Lock()
        self._patterns_lock = threading.Lock()

    def upsert(self, entry: IndexEntry) -> None:
        """Index ``entry``, replacing whatever was indexed for the same id."""
        with self._entries_lock:
            previous = self._entries.get(entry.blueprint_id)
            self._entries[entry.blueprint_id] = entry

        with self._trie_lock:
            if previous is not None:
                for term in previous.terms:
                    self.trie.remove(term, entry.blueprint_id)
            for term in entry.terms:
                self.trie.insert(term, entry.blueprint_id)

        if entry.point is not None:
            self.spatial.insert(entry.blueprint_id, entry.point)
        elif previous is not None and previous.point is not None:
            self.spatial.remove(entry.blueprint_id)

        self.relevance.push(entry.blueprint_id, entry.relevance)

        with self._patterns_lock:
            if previous is not None:
                for key in previous.pattern_keys:
                    self._unlink_pattern(key, entry.blueprint_id)
            for key in entry.pattern_keys:
                self.patterns.setdefault(key, set()).add(entry.blueprint_id)

    def add_patterns(self, blueprint_id: str | None, keys: list[str]) -> None:
        """Register named code patterns, optionally linked to a blueprint."""
        with self._patterns_lock:
            for key in keys:
                ids = self.patterns.setdefault(key, set())
                if blueprint_id:
                    ids.add(blueprint_id)

    def remove(self, blueprint_id: str) -> bool:
        with self._entries_lock:
            entry = self._entries.pop(blueprint_id, None)
        if entry is None:
            return False
        with self._trie_lock:
            for term in entry.terms:
                self.trie.remove(term, blueprint_id)
        self.spatial.remove(blueprint_id)
        self.relevance.remove(blueprint_id)
        with self._patterns_lock:
            for key in entry.pattern_keys:
                self._unlink_pattern(key, blueprint_id)
        return True

    def _unlink_pattern(self, key: str, blueprint_id: str) -> None:
        ids = self.patterns.get(key)
        if ids is None:
            return
        ids.discard(blueprint_id)
        if not ids:
            self.patterns.delete(key)

    # --- Queries ---

    def exact(self, term: str) -> set[str]:
        with self._trie_lock:
            return self.trie.exact(term)

    def prefix(self, term: str) -> dict[str, set[str]]:
        with self._trie_lock:
            return self.trie.prefix(term)

    def nearest(self, point: Point, k: int) -> list[tuple[float, str]]:
        return self.spatial.nearest(point, k)

    def ranked(self, limit: int) -> list[tuple[str, float]]:
        return self.relevance.ranked(limit)

    def blueprints_with_pattern(self, pattern: str) -> set[str]:
        with self._patterns_lock:
            return set(self.patterns.get(pattern) or set())

    def get(self, blueprint_id: str) -> IndexEntry | None:
        with self._entries_lock:
            return self._entries.get(blueprint_id)

    def __contains__(self, blueprint_id: object) -> bool:
        return blueprint_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> dict[str, Any]:
        return {
            "blueprints": len(self._entries),
            "trie_entries": len(self.trie),
            "kd_tree_points": len(self.spatial),
            "kd_tree_pending": self.spatial.pending,
            "kd_tree_rebuilds": self.spatial.rebuilds,
            "priority_queue_size": len(self.relevance),
            "pattern_index_size": len(self.patterns),
        }
