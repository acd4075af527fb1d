# src/processors/base_processor.py - v1
"""Abstract text processor: text -> AnalysisFragment.

Every processor:
- checks its own cache namespace (keyed by a bounded-prefix hash) first;
- runs in fallback mode when its backing library or model was unavailable
  at construction, keeping every detail key with empty/estimated values;
- records per-operation metrics;
- never raises from ``process``: failures come back as a fragment with
  ``error`` set, and such fragments are not cached.
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.cache.fingerprint import prefix_hash
from blueprints_rag.core.metrics import MetricsRecorder
from blueprints_rag.core.models import AnalysisFragment, Keyword
from blueprints_rag.logging.context import processor_scope

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"\b\w+\b")
_ALPHA_RE = re.compile(r"\b[a-zA-Z]+\b")
_SENTENCE_RE = re.compile(r"(?<=[.!?])\s+")


class ProcessingError(Exception):
    """Raised inside a processor run; absorbed into the fragment ``error``."""


class BaseProcessor(ABC):
    """Standard interface for all text processors."""

    kind: ClassVar[str] = ""
    detail_keys: ClassVar[tuple[str, ...]] = ()
    # Detail sections that hold a mapping rather than a list
    mapping_details: ClassVar[frozenset[str]] = frozenset()

    def __init__(
        self,
        cache_manager: CacheManager | None = None,
        prefix_chars: int = 1000,
        enable_cache: bool = True,
    ) -> None:
        self.cache_manager = cache_manager or CacheManager()
        self.prefix_chars = prefix_chars
        self.enable_cache = enable_cache
        self.metrics = MetricsRecorder()

    @property
    @abstractmethod
    def available(self) -> bool:
        """True when the backing library/model loaded at construction."""

    @property
    def cache_scope(self) -> str:
        """Namespace scope; processors with model variants extend it."""
        return self.kind

    def process(self, text: str) -> AnalysisFragment:
        """Analyze ``text``. Never raises."""
        with processor_scope(self.kind, step="process"):
            return self._run(text)

    def _run(self, text: str) -> AnalysisFragment:
        start = time.perf_counter()
        key = prefix_hash(text, self.prefix_chars)

        if self.enable_cache:
            cached = self.cache_manager.get(
                "processor", self.cache_scope, key, model=AnalysisFragment
            )
            if cached is not None:
                self.metrics.record("cache_hit", time.perf_counter() - start)
                logger.debug("%s cache hit", self.kind)
                return cached

        error: str | None = None
        try:
            if self.available:
                fragment = self._analyze(text)
            else:
                fragment = self._fallback(text)
                fragment.fallback = True
        except Exception as e:  # noqa: BLE001
            error = f"{type(e).__name__}: {e}"
            logger.warning("%s processor failed: %s", self.kind, error)
            fragment = self.empty_fragment(error=error)

        duration = time.perf_counter() - start
        fragment.processor = self.kind
        fragment.processing_time_ms = round(duration * 1000, 3)
        self.metrics.record(f"{self.kind}_processing", duration, error)

        if self.enable_cache and fragment.ok:
            self.cache_manager.store(
                "processor",
                self.cache_scope,
                key,
                fragment,
                processing_time_ms=fragment.processing_time_ms,
                metadata={"text_length": len(text)},
            )
        return fragment

    @abstractmethod
    def _analyze(self, text: str) -> AnalysisFragment:
        """Full analysis with the backing resource."""

    @abstractmethod
    def _fallback(self, text: str) -> AnalysisFragment:
        """Reduced analysis without the backing resource."""

    def empty_fragment(self, **fields: Any) -> AnalysisFragment:
        """Fragment with every detail section present and empty."""
        details: dict[str, Any] = {
            k: ({} if k in self.mapping_details else []) for k in self.detail_keys
        }
        return AnalysisFragment(processor=self.kind, details=details, **fields)

    def statistics(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "available": self.available,
            "metrics": self.metrics.snapshot(),
        }


# === TEXT HELPERS ===


def tokenize(text: str) -> list[str]:
    """Lower-cased word tokens."""
    return _WORD_RE.findall(text.lower())


def alpha_words(text: str, min_length: int = 3) -> list[str]:
    """Lower-cased alphabetic words of at least ``min_length`` characters."""
    return [w for w in _ALPHA_RE.findall(text.lower()) if len(w) >= min_length]


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_RE.split(text) if s.strip()]


def term_score(term: str) -> float:
    """Heuristic term importance: longer and capitalized terms score higher."""
    score = len(term) / 10.0
    if any(ch.isupper() for ch in term):
        score += 0.5
    return min(score, 1.0)


def frequency_keywords(text: str, limit: int = 20, threshold: float = 0.3) -> list[Keyword]:
    """Estimate keywords without a language model."""
    seen: dict[str, Keyword] = {}
    for raw in _ALPHA_RE.findall(text):
        if len(raw) < 3:
            continue
        lower = raw.lower()
        score = term_score(raw)
        if score <= threshold:
            continue
        current = seen.get(lower)
        if current is None or score > current.score:
            seen[lower] = Keyword(text=lower, score=score, lemma=lower)
    return sorted(seen.values(), key=lambda k: -k.score)[:limit]
