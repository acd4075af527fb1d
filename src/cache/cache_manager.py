# src/cache/cache_manager.py - v1
"""Facade over the specialized cache namespaces.

Routes ``store``/``get`` to per-kind namespaces (one per processor kind,
per embedding provider, per pipeline configuration), keeps global
``<kind>_<store|get|hit|miss>`` counters, and sweeps expired entries out
of band. Each namespace is swept in its own worker thread so a slow sweep
on one namespace does not delay the others; foreground calls only contend
on the lock of the namespace they touch.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from blueprints_rag.cache.models import CacheError
from blueprints_rag.cache.namespaces import (
    DEFAULT_TTLS,
    NAMESPACE_TYPES,
    CacheNamespace,
    NamespaceKind,
)
from blueprints_rag.cache.result_cache import DEFAULT_MAX_ENTRIES

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL_S = 3600.0


class CacheManager:
    """Owns every cache namespace of one service instance."""

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttls: dict[str, float] | None = None,
        sweep_interval_s: float = DEFAULT_SWEEP_INTERVAL_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_entries = max_entries
        self.ttls = {**DEFAULT_TTLS, **(ttls or {})}
        self.sweep_interval_s = sweep_interval_s
        self._clock = clock
        self._namespaces: dict[str, CacheNamespace] = {}
        self._registry_lock = threading.Lock()
        self._counters: dict[str, int] = {}
        self._counter_lock = threading.Lock()
        self._last_sweep = clock()
        self._sweep_task: asyncio.Task[dict[str, int]] | None = None
        self._sweeper: asyncio.Task[None] | None = None
        self.last_sweep_removed: dict[str, int] = {}

    # --- Namespaces ---

    def namespace(self, kind: NamespaceKind, scope: str) -> CacheNamespace:
        """Return the namespace for (kind, scope), creating it on first use."""
        name = f"{kind}:{scope}"
        with self._registry_lock:
            ns = self._namespaces.get(name)
            if ns is None:
                if kind not in NAMESPACE_TYPES:
                    raise CacheError(f"Unknown cache namespace kind: {kind!r}")
                ns = NAMESPACE_TYPES[kind](
                    scope,
                    ttl=self.ttls[kind],
                    max_entries=self.max_entries,
                    clock=self._clock,
                )
                self._namespaces[name] = ns
                logger.debug("Created cache namespace %s (ttl=%ss)", name, ns.ttl)
            return ns

    def namespaces(self) -> list[CacheNamespace]:
        with self._registry_lock:
            return list(self._namespaces.values())

    # --- Foreground operations ---

    def store(
        self,
        kind: NamespaceKind,
        scope: str,
        key: str,
        value: Any,
        processing_time_ms: float = 0.0,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        """Store a value. Returns False when the cache rejected it."""
        self._count(kind, "store")
        try:
            self.namespace(kind, scope).store(
                key, value, processing_time_ms=processing_time_ms, metadata=metadata
            )
        except CacheError as e:
            logger.warning("Cache store failed: %s", e)
            return False
        finally:
            self.maybe_sweep()
        return True

    def get(
        self,
        kind: NamespaceKind,
        scope: str,
        key: str,
        model: type[BaseModel] | None = None,
    ) -> Any | None:
        """Return the cached value or None; cache failures count as misses."""
        self._count(kind, "get")
        try:
            value = self.namespace(kind, scope).get(key, model=model)
        except CacheError as e:
            logger.warning("Cache read failed, treating as miss: %s", e)
            value = None
        self._count(kind, "hit" if value is not None else "miss")
        if value is None:
            logger.debug("Cache miss %s:%s %s", kind, scope, key[:16])
        return value

    def _count(self, kind: str, op: str) -> None:
        with self._counter_lock:
            name = f"{kind}_{op}"
            self._counters[name] = self._counters.get(name, 0) + 1

    @property
    def counters(self) -> dict[str, int]:
        with self._counter_lock:
            return dict(self._counters)

    # --- Sweeping ---

    def maybe_sweep(self) -> None:
        """Schedule a background sweep when the interval has elapsed.

        Only schedules when called from inside a running event loop; without
        one, expiry still happens lazily on ``get``.
        """
        if self._clock() - self._last_sweep < self.sweep_interval_s:
            return
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._last_sweep = self._clock()
        self._sweep_task = loop.create_task(self.sweep_all())

    async def sweep_all(self) -> dict[str, int]:
        """Sweep every namespace concurrently, each independently.

        Returns:
            Mapping namespace name -> removed entry count.
        """
        namespaces = self.namespaces()
        results = await asyncio.gather(
            *(asyncio.to_thread(ns.sweep) for ns in namespaces),
            return_exceptions=True,
        )
        removed: dict[str, int] = {}
        for ns, result in zip(namespaces, results):
            if isinstance(result, BaseException):
                logger.error("Sweep of %s failed: %s", ns.name, result)
                continue
            removed[ns.name] = result
        self._last_sweep = self._clock()
        self.last_sweep_removed = removed
        logger.info(
            "Cache sweep complete: %d expired entries removed from %d namespaces",
            sum(removed.values()),
            len(namespaces),
        )
        return removed

    async def cleanup_expired(self) -> dict[str, int]:
        """Sweep all namespaces now."""
        return await self.sweep_all()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_s)
            await self.sweep_all()

    def start(self) -> None:
        """Start the periodic sweeper on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
            logger.info("Cache sweeper started (interval=%ss)", self.sweep_interval_s)

    async def stop(self) -> None:
        """Cancel the periodic sweeper and any in-flight scheduled sweep."""
        for task in (self._sweeper, self._sweep_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._sweeper = None
        self._sweep_task = None

    @property
    def running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    # --- Maintenance and stats ---

    def clear_all(self) -> int:
        """Empty every namespace. Returns the number of entries dropped."""
        dropped = sum(ns.clear() for ns in self.namespaces())
        logger.info("Cleared %d cache entries", dropped)
        return dropped

    def statistics(self) -> dict[str, Any]:
        namespaces = {}
        for ns in self.namespaces():
            stats = ns.stats()
            namespaces[ns.name] = {
                **stats.model_dump(),
                "hit_rate": stats.hit_rate,
            }
        return {
            "operations": self.counters,
            "namespaces": namespaces,
            "total_entries": sum(s["entries"] for s in namespaces.values()),
            "sweep_interval_s": self.sweep_interval_s,
            "last_sweep_removed": dict(self.last_sweep_removed),
        }
