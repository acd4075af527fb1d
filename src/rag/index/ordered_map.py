# src/rag/index/ordered_map.py - v1
"""Sorted-key map backed by bisect over a key list."""

from __future__ import annotations

import bisect
from collections.abc import Iterator
from typing import Generic, TypeVar

V = TypeVar("V")


class OrderedMap(Generic[V]):
    """Map with string keys iterated in ascending order.

    Invariant: ``_keys`` is sorted and holds exactly the keys of ``_values``.
    """

    def __init__(self) -> None:
        self._keys: list[str] = []
        self._values: dict[str, V] = {}

    def set(self, key: str, value: V) -> None:
        if key not in self._values:
            bisect.insort(self._keys, key)
        self._values[key] = value

    def get(self, key: str, default: V | None = None) -> V | None:
        return self._values.get(key, default)

    def setdefault(self, key: str, default: V) -> V:
        if key not in self._values:
            self.set(key, default)
        return self._values[key]

    def delete(self, key: str) -> bool:
        if key not in self._values:
            return False
        del self._values[key]
        idx = bisect.bisect_left(self._keys, key)
        del self._keys[idx]
        return True

    def items(self) -> list[tuple[str, V]]:
        return [(k, self._values[k]) for k in self._keys]

    def keys(self) -> list[str]:
        return list(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._keys))

    def __len__(self) -> int:
        return len(self._keys)
