# src/rag/index/prefix_index.py - v1
"""Trie mapping lower-cased terms to the set of blueprint ids holding them."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class _Node:
    children: dict[str, _Node] = field(default_factory=dict)
    ids: set[str] = field(default_factory=set)


class PrefixIndex:
    """Exact and prefix lookup over terms.

    Terms are normalized with ``str.lower`` and whitespace collapse, so
    multi-word phrases are stored as a single key.
    """

    def __init__(self) -> None:
        self._root = _Node()
        self._terms = 0

    @staticmethod
    def normalize(term: str) -> str:
        return " ".join(term.lower().split())

    def insert(self, term: str, blueprint_id: str) -> None:
        key = self.normalize(term)
        if not key:
            return
        node = self._root
        for ch in key:
            node = node.children.setdefault(ch, _Node())
        if not node.ids:
            self._terms += 1
        node.ids.add(blueprint_id)

    def remove(self, term: str, blueprint_id: str) -> bool:
        """Detach ``blueprint_id`` from ``term``; prunes emptied branches."""
        key = self.normalize(term)
        path = [self._root]
        for ch in key:
            nxt = path[-1].children.get(ch)
            if nxt is None:
                return False
            path.append(nxt)
        node = path[-1]
        if blueprint_id not in node.ids:
            return False
        node.ids.discard(blueprint_id)
        if not node.ids:
            self._terms -= 1
        for depth in range(len(key), 0, -1):
            child = path[depth]
            if child.ids or child.children:
                break
            del path[depth - 1].children[key[depth - 1]]
        return True

    def exact(self, term: str) -> set[str]:
        node = self._find(self.normalize(term))
        return set(node.ids) if node else set()

    def prefix(self, prefix: str) -> dict[str, set[str]]:
        """All stored terms starting with ``prefix`` (including itself)."""
        key = self.normalize(prefix)
        node = self._find(key)
        if node is None:
            return {}
        found: dict[str, set[str]] = {}
        stack = [(key, node)]
        while stack:
            term, current = stack.pop()
            if current.ids:
                found[term] = set(current.ids)
            for ch, child in current.children.items():
                stack.append((term + ch, child))
        return found

    def _find(self, key: str) -> _Node | None:
        if not key:
            return None
        node = self._root
        for ch in key:
            node = node.children.get(ch)
            if node is None:
                return None
        return node

    def __len__(self) -> int:
        """Number of distinct terms."""
        return self._terms
