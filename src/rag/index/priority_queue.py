# src/rag/index/priority_queue.py - v1
"""Binary-heap priority queue with stable ordering among equal priorities."""

from __future__ import annotations

import heapq
import itertools
from typing import Generic, TypeVar

T = TypeVar("T")


class PriorityQueue(Generic[T]):
    """Priority queue over (priority, item).

    ``highest_first=False`` pops the lowest priority first (min-queue, used
    for processor ordering); ``highest_first=True`` pops the highest first
    (used for relevance ranking). Ties pop in insertion order.
    """

    def __init__(self, highest_first: bool = False) -> None:
        self.highest_first = highest_first
        self._heap: list[tuple[float, int, T]] = []
        self._seq = itertools.count()

    def push(self, item: T, priority: float) -> None:
        key = -priority if self.highest_first else priority
        heapq.heappush(self._heap, (key, next(self._seq), item))

    def pop(self) -> tuple[T, float]:
        """Remove and return (item, priority). Raises IndexError when empty."""
        key, _, item = heapq.heappop(self._heap)
        return item, (-key if self.highest_first else key)

    def copy(self) -> PriorityQueue[T]:
        """Independent snapshot; popping the copy leaves this queue intact."""
        clone: PriorityQueue[T] = PriorityQueue(self.highest_first)
        clone._heap = list(self._heap)
        clone._seq = itertools.count(next(self._seq))
        return clone

    def drain(self, limit: int | None = None) -> list[tuple[T, float]]:
        out: list[tuple[T, float]] = []
        while self._heap and (limit is None or len(out) < limit):
            out.append(self.pop())
        return out

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
