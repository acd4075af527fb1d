# src/rag/index/spatial_index.py - v1
"""2-D nearest-neighbour index: batch-built kd-tree plus a pending buffer.

The kd-tree is only ever built in one batch. Points inserted after the last
build go to a pending buffer that is scanned brute-force at query time;
once the buffer grows past ``rebuild_threshold`` the tree is rebuilt over
all live points. Ids whose point changed or was removed since the build are
marked stale and skipped during tree search, so queries are always exact.
"""

from __future__ import annotations

import heapq
import logging
import math
import threading
from dataclasses import dataclass

logger = logging.getLogger(__name__)

Point = tuple[float, float]


@dataclass
class _KdNode:
    point: Point
    item_id: str
    axis: int
    left: _KdNode | None = None
    right: _KdNode | None = None


def _build(items: list[tuple[Point, str]], depth: int = 0) -> _KdNode | None:
    if not items:
        return None
    axis = depth % 2
    items.sort(key=lambda it: it[0][axis])
    mid = len(items) // 2
    point, item_id = items[mid]
    return _KdNode(
        point=point,
        item_id=item_id,
        axis=axis,
        left=_build(items[:mid], depth + 1),
        right=_build(items[mid + 1 :], depth + 1),
    )


def _distance(a: Point, b: Point) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


class SpatialIndex:
    """Exact k-nearest-neighbour search over 2-D points keyed by id."""

    def __init__(self, rebuild_threshold: int = 32) -> None:
        self.rebuild_threshold = rebuild_threshold
        self._points: dict[str, Point] = {}
        self._root: _KdNode | None = None
        self._tree_ids: set[str] = set()
        self._pending: set[str] = set()
        self._stale: set[str] = set()
        self._lock = threading.Lock()
        self.rebuilds = 0

    def insert(self, item_id: str, point: Point) -> None:
        with self._lock:
            self._points[item_id] = (float(point[0]), float(point[1]))
            if item_id in self._tree_ids:
                self._stale.add(item_id)
            self._pending.add(item_id)
            if len(self._pending) > self.rebuild_threshold:
                self._rebuild_locked()

    def remove(self, item_id: str) -> bool:
        with self._lock:
            if self._points.pop(item_id, None) is None:
                return False
            self._pending.discard(item_id)
            if item_id in self._tree_ids:
                self._stale.add(item_id)
            return True

    def rebuild(self) -> None:
        with self._lock:
            self._rebuild_locked()

    def _rebuild_locked(self) -> None:
        items = [(p, i) for i, p in self._points.items()]
        self._root = _build(items)
        self._tree_ids = set(self._points)
        self._pending.clear()
        self._stale.clear()
        self.rebuilds += 1
        logger.debug("Spatial index rebuilt over %d points", len(items))

    def nearest(self, point: Point, k: int = 5) -> list[tuple[float, str]]:
        """Return up to ``k`` (distance, id) pairs, closest first."""
        if k <= 0:
            return []
        target = (float(point[0]), float(point[1]))
        with self._lock:
            # max-heap of (-distance, id) holding the best k so far
            best: list[tuple[float, str]] = []
            self._search(self._root, target, k, best)
            for item_id in self._pending:
                self._offer(best, k, _distance(target, self._points[item_id]), item_id)
        return sorted(((-d, i) for d, i in best), key=lambda t: (t[0], t[1]))

    def _search(
        self,
        node: _KdNode | None,
        target: Point,
        k: int,
        best: list[tuple[float, str]],
    ) -> None:
        if node is None:
            return
        if node.item_id not in self._stale:
            self._offer(best, k, _distance(target, node.point), node.item_id)
        diff = target[node.axis] - node.point[node.axis]
        near, far = (node.left, node.right) if diff < 0 else (node.right, node.left)
        self._search(near, target, k, best)
        if len(best) < k or abs(diff) < -best[0][0]:
            self._search(far, target, k, best)

    @staticmethod
    def _offer(best: list[tuple[float, str]], k: int, dist: float, item_id: str) -> None:
        if len(best) < k:
            heapq.heappush(best, (-dist, item_id))
        elif dist < -best[0][0]:
            heapq.heapreplace(best, (-dist, item_id))

    @property
    def pending(self) -> int:
        return len(self._pending)

    def __len__(self) -> int:
        return len(self._points)
