# src/rag/embeddings/base_provider.py - v1
"""Abstract embedding provider with per-provider caching and timeouts.

Subclasses implement ``_embed_one`` (and optionally ``_embed_many`` for
native batching). The base class handles:
- empty/blank text -> empty vector, no backend call, no cache write;
- truncation to ``max_chars`` before hashing and embedding;
- the cache, keyed by (truncated text hash, model, normalize flag);
- caller-supplied timeouts;
- wrapping every backend failure into EmbeddingError.
"""

from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.cache.fingerprint import embedding_key
from blueprints_rag.core.metrics import MetricsRecorder
from blueprints_rag.core.similarity import normalize_vector

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 512
DEFAULT_TIMEOUT_S = 30.0


class EmbeddingError(Exception):
    """Raised when a provider cannot produce a vector (load, network, quota, timeout)."""


class EmbeddingProvider(ABC):
    """Unified interface for all embedding providers."""

    provider_name: ClassVar[str] = ""
    default_model: ClassVar[str] = ""
    default_dimensions: ClassVar[int] = 0

    def __init__(
        self,
        model: str | None = None,
        dimensions: int | None = None,
        normalize: bool = False,
        max_chars: int = DEFAULT_MAX_CHARS,
        timeout_s: float | None = DEFAULT_TIMEOUT_S,
        cache_manager: CacheManager | None = None,
    ) -> None:
        self._model_name = model or self.default_model
        self._dimensions = dimensions or self.default_dimensions
        self.normalize = normalize
        self.max_chars = max_chars
        self.timeout_s = timeout_s
        self.cache_manager = cache_manager or CacheManager()
        self.metrics = MetricsRecorder()

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimensions(self) -> int:
        """Output vector dimensions."""
        return self._dimensions

    # --- Backend hooks ---

    @abstractmethod
    async def _embed_one(self, text: str, model: str) -> list[float]:
        """Call the backend for one (already truncated, non-empty) text."""

    async def _embed_many(self, texts: list[str], model: str) -> list[list[float]]:
        """Batch hook; backends with native batching override this."""
        return [await self._embed_one(text, model) for text in texts]

    # --- Public API ---

    async def embed(
        self,
        text: str,
        *,
        normalize: bool | None = None,
        model: str | None = None,
        cache: bool = True,
        timeout: float | None = None,
    ) -> list[float]:
        """Embed ``text``.

        Returns:
            The vector, or ``[]`` for empty/blank text.

        Raises:
            EmbeddingError: On any backend failure or timeout.
        """
        vectors = await self.embed_batch(
            [text], normalize=normalize, model=model, cache=cache, timeout=timeout
        )
        return vectors[0]

    async def embed_batch(
        self,
        texts: list[str],
        *,
        normalize: bool | None = None,
        model: str | None = None,
        cache: bool = True,
        timeout: float | None = None,
    ) -> list[list[float]]:
        """Embed several texts; cached ones are not sent to the backend."""
        model = model or self.model_name
        norm = self.normalize if normalize is None else normalize
        truncated = [t[: self.max_chars] if t and t.strip() else "" for t in texts]
        results: list[list[float] | None] = [None] * len(texts)
        misses: dict[str, list[int]] = {}

        for i, text in enumerate(truncated):
            if not text:
                results[i] = []
                continue
            if cache:
                cached = self.cache_manager.get(
                    "embedding", self.provider_name, embedding_key(text, model, norm)
                )
                if cached is not None:
                    results[i] = cached
                    continue
            misses.setdefault(text, []).append(i)

        if misses:
            pending = list(misses)
            vectors = await self._call_backend(pending, model, timeout)
            for text, vector in zip(pending, vectors):
                vector = [float(x) for x in vector]
                if norm:
                    vector = normalize_vector(vector)
                if cache:
                    self.cache_manager.store(
                        "embedding",
                        self.provider_name,
                        embedding_key(text, model, norm),
                        vector,
                        metadata={"model": model},
                    )
                for i in misses[text]:
                    results[i] = vector
        return [r if r is not None else [] for r in results]

    async def _call_backend(
        self, texts: list[str], model: str, timeout: float | None
    ) -> list[list[float]]:
        limit = timeout if timeout is not None else self.timeout_s
        start = time.perf_counter()
        try:
            vectors = await asyncio.wait_for(self._embed_many(texts, model), limit)
        except asyncio.TimeoutError as e:
            error = f"{self.provider_name} timed out after {limit}s"
            self.metrics.record("embed", time.perf_counter() - start, error)
            raise EmbeddingError(error) from e
        except EmbeddingError as e:
            self.metrics.record("embed", time.perf_counter() - start, str(e))
            raise
        except Exception as e:  # noqa: BLE001
            error = f"{self.provider_name} failed: {type(e).__name__}: {e}"
            self.metrics.record("embed", time.perf_counter() - start, error)
            raise EmbeddingError(error) from e

        if len(vectors) != len(texts) or any(len(v) == 0 for v in vectors):
            error = f"{self.provider_name} returned {len(vectors)} vectors for {len(texts)} texts"
            self.metrics.record("embed", time.perf_counter() - start, error)
            raise EmbeddingError(error)
        self.metrics.record("embed", time.perf_counter() - start)
        return vectors

    async def healthy(self) -> bool:
        """True when the backend answers a small uncached request."""
        try:
            await self.embed("health check", cache=False)
        except EmbeddingError as e:
            logger.warning("Embedding provider %s unhealthy: %s", self.provider_name, e)
            return False
        return True

    def clear_cache(self) -> int:
        return self.cache_manager.namespace("embedding", self.provider_name).clear()

    def statistics(self) -> dict[str, Any]:
        return {
            "provider": self.provider_name,
            "model": self.model_name,
            "dimensions": self.dimensions,
            "metrics": self.metrics.snapshot(),
        }
