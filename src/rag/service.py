# src/rag/service.py - v1
"""RagService: blueprint ingestion, hybrid search and similarity lookup.

Ingestion runs the Pipeline, obtains an embedding (falling back to the
record's feature vector when the provider fails), extracts code features,
updates the hybrid index and caches the analysis. Queries go through the
same Pipeline and provider so index-time and query-time processing match.

Only ConfigurationError escapes this class. Every other failure is
absorbed: ingestion returns a fallback analysis, search returns an empty
result list with ``error`` set, similarity returns an empty list.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

from blueprints_rag.cache.cache_factory import create_cache_manager
from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.cache.fingerprint import config_hash, text_hash
from blueprints_rag.config.settings import Settings, load_settings
from blueprints_rag.core.metrics import MetricsRecorder
from blueprints_rag.core.models import AnalysisRecord, Blueprint
from blueprints_rag.core.similarity import cosine_similarity
from blueprints_rag.logging.context import blueprint_scope
from blueprints_rag.logging.logger import setup_logging_from_settings
from blueprints_rag.pipeline.builder import build_pipeline_from_settings
from blueprints_rag.pipeline.pipeline import Pipeline
from blueprints_rag.processors.registry import ProcessorRegistry
from blueprints_rag.rag.code_features import (
    analyze_patterns,
    complexity_band,
    extract_code_features,
    pattern_keys,
)
from blueprints_rag.rag.embeddings.base_provider import EmbeddingError, EmbeddingProvider
from blueprints_rag.rag.embeddings.registry import (
    ProviderRegistry,
    create_provider_from_settings,
)
from blueprints_rag.rag.index.hybrid_index import HybridIndex
from blueprints_rag.rag.models import (
    BlueprintAnalysis,
    CodeFeatures,
    CodePatterns,
    FallbackFeatures,
    IndexEntry,
    SearchMetadata,
    SearchResponse,
    SearchStats,
    SimilarBlueprint,
)
from blueprints_rag.rag.search import hybrid_search

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class QueryError(Exception):
    """Raised for an unusable query; surfaced as ``SearchResponse.error``."""


class RagService:
    """Top-level orchestrator owning the pipeline, provider and hybrid index.

    Args:
        settings: Validated settings (flat options map from the host).
        cache_manager: Shared cache manager; built from settings by default.
        processor_registry: Registry used to build the pipeline.
        provider_registry: Registry used to create the embedding provider.
        provider: Explicit provider instance; ``None`` disables provider
            embeddings (feature vectors are used instead).
        pipeline: Pre-built pipeline, bypassing the settings-driven build.

    Raises:
        ConfigurationError: On invalid processors or an unknown provider.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        cache_manager: CacheManager | None = None,
        processor_registry: ProcessorRegistry | None = None,
        provider_registry: ProviderRegistry | None = None,
        provider: EmbeddingProvider | None = _UNSET,
        pipeline: Pipeline | None = None,
    ) -> None:
        self.settings = settings if settings is not None else load_settings()
        self.cache_manager = cache_manager or create_cache_manager(self.settings)
        self.pipeline = pipeline or build_pipeline_from_settings(
            self.settings, registry=processor_registry, cache_manager=self.cache_manager
        )
        if provider is _UNSET:
            provider = create_provider_from_settings(
                self.settings, registry=provider_registry, cache_manager=self.cache_manager
            )
        self.provider: EmbeddingProvider | None = provider
        self.index = HybridIndex(self.settings.spatial_rebuild_threshold)
        self.metrics = MetricsRecorder()
        self._cache_scope = "service-" + config_hash(
            {
                "pipeline": self.pipeline.config_hash,
                "provider": self.provider.provider_name if self.provider else None,
                "model": self.provider.model_name if self.provider else None,
            }
        )

    @classmethod
    def from_options(
        cls, options: Mapping[str, Any] | None = None, *, configure_logging: bool = True
    ) -> RagService:
        """Build a service from the host's flat options map.

        Raises:
            ConfigurationError: If the options do not validate.
        """
        settings = load_settings(**dict(options or {}))
        if configure_logging:
            setup_logging_from_settings(settings)
        return cls(settings)

    # --- Lifecycle ---

    def start(self) -> None:
        """Start background cache sweeping (needs a running event loop)."""
        self.cache_manager.start()

    async def close(self) -> None:
        await self.cache_manager.stop()

    # --- Ingestion ---

    async def process_blueprint(
        self, blueprint: Blueprint | Mapping[str, Any]
    ) -> BlueprintAnalysis:
        """Analyze and index one blueprint. Never raises."""
        start = time.perf_counter()
        try:
            bp = blueprint if isinstance(blueprint, Blueprint) else Blueprint.model_validate(blueprint)
        except ValueError as e:
            self.metrics.record("processing_error", time.perf_counter() - start, str(e))
            logger.warning("Invalid blueprint record: %s", e)
            return self._fallback_analysis(Blueprint(), str(e), raw=blueprint)

        blueprint_id = bp.resolved_id()
        with blueprint_scope(blueprint_id):
            try:
                return await self._process(bp, blueprint_id, start)
            except Exception as e:  # noqa: BLE001
                self.metrics.record("processing_error", time.perf_counter() - start, str(e))
                logger.error("Blueprint %s processing failed: %s", blueprint_id, e)
                return self._fallback_analysis(bp, f"{type(e).__name__}: {e}")

    async def _process(self, bp: Blueprint, blueprint_id: str, start: float) -> BlueprintAnalysis:
        text = bp.text_content()
        key = text_hash(text)

        cached = self.cache_manager.get(
            "pipeline", self._cache_scope, key, model=BlueprintAnalysis
        )
        if cached is not None:
            analysis = cached.model_copy(
                update={"blueprint_id": blueprint_id, "cache_hit": True}
            )
            self._index(analysis)
            self.metrics.record("cache_hit", time.perf_counter() - start)
            return analysis

        record = await self.pipeline.process(text)
        embedding, source = await self._embed(text, record)
        code_features = extract_code_features(bp.code)

        analysis = BlueprintAnalysis(
            blueprint_id=blueprint_id,
            record=record,
            embedding=embedding,
            embedding_source=source,
            code_features=code_features,
            search_metadata=build_search_metadata(record, code_features),
            content_hash=bp.content_hash(),
            relevance=relevance_score(record, code_features),
            error=record.error,
        )
        self._index(analysis)

        duration = time.perf_counter() - start
        # Degraded analyses are recomputed on the next ingestion.
        if record.complete and (source == "provider" or self.provider is None):
            self.cache_manager.store(
                "pipeline",
                self._cache_scope,
                key,
                analysis,
                processing_time_ms=duration * 1000,
            )
        self.metrics.record("processing_success", duration)
        logger.debug("Processed blueprint %s in %.1fms", blueprint_id, duration * 1000)
        return analysis

    async def _embed(self, text: str, record: AnalysisRecord) -> tuple[list[float], str]:
        """Provider vector, or the record's feature vector on failure."""
        if self.provider is not None:
            try:
                vector = await self.provider.embed(text)
            except EmbeddingError as e:
                logger.warning("Embedding failed, using feature vector: %s", e)
            else:
                if vector:
                    return vector, "provider"
        if record.feature_vector:
            return list(record.feature_vector), "features"
        return [], "none"

    def _index(self, analysis: BlueprintAnalysis) -> None:
        embedding = analysis.embedding
        self.index.upsert(
            IndexEntry(
                blueprint_id=analysis.blueprint_id,
                terms=analysis.search_metadata.searchable_terms,
                point=(embedding[0], embedding[1]) if len(embedding) >= 2 else None,
                embedding=embedding,
                relevance=analysis.relevance,
                pattern_keys=analysis.code_features.patterns,
            )
        )

    def _fallback_analysis(
        self, bp: Blueprint, error: str, raw: Any = None
    ) -> BlueprintAnalysis:
        text = bp.text_content()
        content_hash = bp.content_hash() if raw is None else text_hash(str(raw))[:32]
        return BlueprintAnalysis(
            blueprint_id=bp.resolved_id() if raw is None else content_hash[:8],
            content_hash=content_hash,
            error=error,
            fallback_features=FallbackFeatures(
                character_count=len(text),
                word_count=len(text.split()),
                line_count=len(text.splitlines()),
                has_code=bool(bp.code),
                content_hash=content_hash,
            ),
        )

    # --- Queries ---

    async def search_blueprints(
        self,
        query: str,
        *,
        max_results: int | None = None,
        relevance_threshold: float | None = None,
        k: int | None = None,
        include_analysis: bool = False,
    ) -> SearchResponse:
        """Hybrid search. Never raises; failures set ``error``."""
        start = time.perf_counter()
        try:
            if not query or not query.strip():
                raise QueryError("query is empty")
            record = await self.pipeline.process(query)
            vector, _ = await self._embed(query, record)
            hits, stats = hybrid_search(
                self.index,
                query,
                vector or None,
                k=self.settings.search_k if k is None else k,
                max_results=(
                    self.settings.search_max_results if max_results is None else max_results
                ),
                relevance_threshold=(
                    self.settings.search_relevance_threshold
                    if relevance_threshold is None
                    else relevance_threshold
                ),
            )
        except Exception as e:  # noqa: BLE001
            duration = time.perf_counter() - start
            self.metrics.record("search_error", duration, str(e))
            logger.warning("Search failed for %r: %s", query, e)
            return SearchResponse(
                query=query,
                error=str(e),
                stats=SearchStats(processing_time_s=duration),
            )

        duration = time.perf_counter() - start
        stats.processing_time_s = duration
        self.metrics.record("search_success", duration)
        return SearchResponse(
            query=query,
            results=hits,
            stats=stats,
            query_analysis=record.view("summary") if include_analysis else None,
        )

    async def find_similar_blueprints(
        self,
        blueprint_id: str,
        *,
        k: int | None = None,
        threshold: float | None = None,
    ) -> list[SimilarBlueprint]:
        """Blueprints whose full vectors are cosine-similar to ``blueprint_id``.

        Candidates come from the 2-D spatial index (2k of them); each is then
        scored by cosine similarity over the full-length vectors. The
        blueprint itself is excluded.
        """
        start = time.perf_counter()
        k = self.settings.similarity_k if k is None else k
        threshold = self.settings.similarity_threshold if threshold is None else threshold
        try:
            target = self.index.get(blueprint_id)
            if target is None or target.point is None or not target.embedding:
                return []
            similar: list[SimilarBlueprint] = []
            for distance, candidate_id in self.index.nearest(target.point, k * 2 + 1):
                if candidate_id == blueprint_id:
                    continue
                candidate = self.index.get(candidate_id)
                if candidate is None:
                    continue
                similarity = cosine_similarity(target.embedding, candidate.embedding)
                if similarity >= threshold:
                    similar.append(
                        SimilarBlueprint(
                            blueprint_id=candidate_id, similarity=similarity, distance=distance
                        )
                    )
            similar.sort(key=lambda s: -s.similarity)
            self.metrics.record("similarity_search", time.perf_counter() - start)
            return similar[:k]
        except Exception as e:  # noqa: BLE001
            self.metrics.record("similarity_error", time.perf_counter() - start, str(e))
            logger.error("Similarity search for %s failed: %s", blueprint_id, e)
            return []

    async def analyze_code_patterns(
        self, blueprint: Blueprint | Mapping[str, Any]
    ) -> CodePatterns:
        """Naming, comment and complexity report for the blueprint's code."""
        start = time.perf_counter()
        try:
            bp = blueprint if isinstance(blueprint, Blueprint) else Blueprint.model_validate(blueprint)
            if not bp.code:
                return CodePatterns()
            record = await self.pipeline.process(bp.code)
            diversity = record.complexity_metric("lexical_diversity") or 0.0
            patterns = analyze_patterns(bp.code, lexical_diversity=diversity)
            self.index.add_patterns(bp.resolved_id(), pattern_keys(patterns))
            self.metrics.record("pattern_analysis", time.perf_counter() - start)
            return patterns
        except Exception as e:  # noqa: BLE001
            self.metrics.record("pattern_error", time.perf_counter() - start, str(e))
            logger.error("Code pattern analysis failed: %s", e)
            return CodePatterns(error=str(e))

    # --- Maintenance ---

    async def rebuild_search_index(
        self, blueprints: Iterable[Blueprint | Mapping[str, Any]]
    ) -> dict[str, Any]:
        """Replace the index with one built from ``blueprints``.

        Blueprints that fail are logged and skipped.
        """
        start = time.perf_counter()
        self.index = HybridIndex(self.settings.spatial_rebuild_threshold)
        indexed = failed = 0
        for blueprint in blueprints:
            analysis = await self.process_blueprint(blueprint)
            if analysis.fallback_features is not None:
                failed += 1
                logger.warning(
                    "Skipped blueprint %s during rebuild: %s",
                    analysis.blueprint_id,
                    analysis.error,
                )
            else:
                indexed += 1
        self.index.spatial.rebuild()
        duration = time.perf_counter() - start
        self.metrics.record("index_rebuild", duration)
        logger.info(
            "Search index rebuilt: %d indexed, %d skipped in %.2fs", indexed, failed, duration
        )
        return {"indexed": indexed, "failed": failed, "duration_s": duration}

    def get_statistics(self) -> dict[str, Any]:
        index_stats = self.index.stats()
        operations = self.metrics.snapshot()
        return {
            "pipeline": self.pipeline.statistics(),
            "cache": self.cache_manager.statistics(),
            "index": index_stats,
            "memory": estimate_memory(index_stats, len(operations)),
            "operations": operations,
            "provider": self.provider.statistics() if self.provider else None,
        }


# === DERIVED METADATA ===


def build_search_metadata(record: AnalysisRecord, code: CodeFeatures) -> SearchMetadata:
    analysis = record.combined_analysis
    terms = [k.text.lower() for k in analysis.keywords]
    terms += [e.text.lower() for e in analysis.entities]
    terms += [c.word.lower() for c in analysis.concepts]

    tags = []
    if code.language != "unknown":
        tags.append(code.language)
    tags.append(complexity_band(code.complexity_score))
    if analysis.entities:
        tags.append("entity-rich")
    if len(analysis.keywords) > 10:
        tags.append("keyword-dense")

    clusters: dict[str, list[str]] = {}
    for concept in analysis.concepts:
        clusters.setdefault(concept.category or "general", []).append(concept.word)

    return SearchMetadata(
        searchable_terms=list(dict.fromkeys(t for t in terms if t.strip())),
        categorical_tags=tags,
        relevance_boosters={
            "high_value_keywords": [k.text for k in analysis.keywords if k.score > 0.7],
            "named_entities": [e.text for e in analysis.entities if e.confidence > 0.8],
        },
        semantic_clusters=clusters,
    )


def relevance_score(record: AnalysisRecord, code: CodeFeatures) -> float:
    """Weighted feature counts, completeness, quality and code shape in [0, 1]."""
    analysis = record.combined_analysis
    score = (
        len(analysis.keywords) * 0.1
        + len(analysis.entities) * 0.2
        + len(analysis.concepts) * 0.15
        + record.scores.completeness * 0.25
        + record.scores.quality * 0.3
        + code.function_count * 0.05
        + max(0.0, 1.0 - code.complexity_score / 10.0) * 0.2
    )
    return max(0.0, min(1.0, score))


def estimate_memory(index_stats: dict[str, Any], operation_count: int) -> dict[str, Any]:
    items = sum(
        index_stats.get(name, 0)
        for name in ("trie_entries", "kd_tree_points", "priority_queue_size", "pattern_index_size")
    )
    return {"index_items": items, "estimated_kb": items * 100 + operation_count * 50}
