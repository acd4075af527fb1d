# src/cache/namespaces.py - v1
"""Specialized cache namespaces managed by CacheManager.

A namespace wraps one ResultCache and stores payloads in JSON-ready form:
pydantic models are dumped on store and re-validated on every hit, so a
cached value can never be mutated through a reference held by a caller.

Namespace kinds and their default TTLs follow recomputation cost:
processor fragments 24h, embedding vectors 7d, pipeline records 12h.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from collections.abc import Callable
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ValidationError

from blueprints_rag.cache.models import CacheEntry, CacheError, NamespaceStats
from blueprints_rag.cache.result_cache import DEFAULT_MAX_ENTRIES, ResultCache

logger = logging.getLogger(__name__)

NamespaceKind = Literal["processor", "embedding", "pipeline"]

DEFAULT_TTLS: dict[str, float] = {
    "processor": 86_400.0,
    "embedding": 604_800.0,
    "pipeline": 43_200.0,
}

M = TypeVar("M", bound=BaseModel)


class CacheNamespace:
    """One isolated cache with its own lock, TTL and statistics."""

    kind: NamespaceKind = "processor"

    def __init__(
        self,
        scope: str,
        ttl: float | None = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.scope = scope
        self._cache = ResultCache(
            max_entries=max_entries,
            default_ttl=DEFAULT_TTLS[self.kind] if ttl is None else ttl,
            clock=clock,
            name=self.name,
        )

    @property
    def name(self) -> str:
        return f"{self.kind}:{self.scope}"

    @property
    def ttl(self) -> float | None:
        return self._cache.default_ttl

    @ttl.setter
    def ttl(self, value: float | None) -> None:
        """Applies to entries stored from now on."""
        self._cache.default_ttl = value

    def store(
        self,
        key: str,
        value: Any,
        processing_time_ms: float = 0.0,
        metadata: dict[str, Any] | None = None,
        ttl: float | None = None,
    ) -> None:
        """Serialize and store ``value``.

        Raises:
            CacheError: If the value cannot be serialized.
        """
        try:
            payload = (
                value.model_dump(mode="json")
                if isinstance(value, BaseModel)
                else _copy_json(value)
            )
        except (TypeError, ValueError) as e:
            raise CacheError(f"{self.name}: cannot serialize value: {e}") from e
        meta = {"processing_time_ms": processing_time_ms, **(metadata or {})}
        self._cache.store(key, payload, ttl=ttl, metadata=meta)

    def get(self, key: str, model: type[M] | None = None) -> Any | None:
        """Return a fresh copy of the cached value, or None on miss.

        Raises:
            CacheError: If a stored payload no longer validates against ``model``.
        """
        payload = self._cache.get(key)
        if payload is None:
            return None
        if model is None:
            return _copy_json(payload)
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            self._cache.delete(key)
            raise CacheError(f"{self.name}: corrupt entry {key}: {e}") from e

    def delete(self, key: str) -> bool:
        return self._cache.delete(key)

    def clear(self) -> int:
        return self._cache.clear()

    def sweep(self) -> int:
        removed = self._cache.sweep()
        if removed:
            logger.debug("Swept %d expired entries from %s", removed, self.name)
        return removed

    def __len__(self) -> int:
        return len(self._cache)

    def stats(self) -> NamespaceStats:
        entries = self._cache.entries()
        times = [float(e.metadata.get("processing_time_ms", 0.0)) for e in entries]
        return NamespaceStats(
            name=self.name,
            entries=len(entries),
            max_entries=self._cache.max_entries,
            ttl_s=self.ttl,
            hits=self._cache.hits,
            misses=self._cache.misses,
            evictions=self._cache.evictions,
            expired=self._cache.expired,
            avg_processing_time_ms=sum(times) / len(times) if times else 0.0,
            extra=self._extra_stats(entries),
        )

    def _extra_stats(self, entries: list[CacheEntry]) -> dict[str, Any]:
        return {}


class ProcessorNamespace(CacheNamespace):
    """Fragments of one processor kind, keyed by bounded-prefix hash."""

    kind: NamespaceKind = "processor"

    def _extra_stats(self, entries: list[CacheEntry]) -> dict[str, Any]:
        concepts: Counter[str] = Counter()
        fallback = 0
        for entry in entries:
            payload = entry.payload
            if not isinstance(payload, dict):
                continue
            fallback += bool(payload.get("fallback"))
            for concept in payload.get("concepts", []):
                concepts[concept.get("concept") or concept.get("word", "")] += 1
        extra: dict[str, Any] = {"fallback_entries": fallback}
        if concepts:
            extra["top_concepts"] = [
                {"concept": c, "count": n} for c, n in concepts.most_common(10)
            ]
        return extra


class EmbeddingNamespace(CacheNamespace):
    """Vectors of one provider, keyed by (model, normalize, text hash)."""

    kind: NamespaceKind = "embedding"

    def _extra_stats(self, entries: list[CacheEntry]) -> dict[str, Any]:
        models = Counter(str(e.metadata.get("model", "")) for e in entries)
        dims = {len(e.payload) for e in entries if isinstance(e.payload, list)}
        return {
            "provider": self.scope,
            "models": dict(models),
            "dimensions": sorted(dims),
        }


class PipelineNamespace(CacheNamespace):
    """Pipeline records, and the service analyses that wrap them, per configuration."""

    kind: NamespaceKind = "pipeline"

    def _extra_stats(self, entries: list[CacheEntry]) -> dict[str, Any]:
        usage: Counter[str] = Counter()
        qualities: list[float] = []
        for entry in entries:
            payload = entry.payload
            if not isinstance(payload, dict):
                continue
            # Service-level analyses nest the pipeline record under "record"
            record = payload.get("record", payload)
            if not isinstance(record, dict):
                continue
            usage.update(record.get("processors_used", []))
            scores = record.get("scores") or {}
            if "quality" in scores:
                qualities.append(float(scores["quality"]))
        return {
            "processor_usage": dict(usage),
            "avg_quality": sum(qualities) / len(qualities) if qualities else 0.0,
        }


NAMESPACE_TYPES: dict[str, type[CacheNamespace]] = {
    "processor": ProcessorNamespace,
    "embedding": EmbeddingNamespace,
    "pipeline": PipelineNamespace,
}


def _copy_json(value: Any) -> Any:
    """Deep copy restricted to JSON-compatible values."""
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (list, tuple)):
        return [_copy_json(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _copy_json(v) for k, v in value.items()}
    raise TypeError(f"unsupported cache value type {type(value).__name__}")
