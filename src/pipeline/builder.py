# src/pipeline/builder.py - v1
"""Fluent PipelineBuilder.

Processor kinds are resolved against a ProcessorRegistry when added, and
their run order is fixed at ``build()`` by draining a min-priority queue
(equal priorities keep insertion order).
"""

from __future__ import annotations

import logging
from typing import Any

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.config.settings import ConfigurationError, Settings
from blueprints_rag.core.models import OutputFormat
from blueprints_rag.pipeline.pipeline import Pipeline, PipelineConfig, PipelineStage
from blueprints_rag.processors.registry import (
    ProcessorKind,
    ProcessorRegistry,
    default_processor_registry,
)
from blueprints_rag.rag.index.priority_queue import PriorityQueue

logger = logging.getLogger(__name__)


class PipelineBuilder:
    """Assemble a Pipeline from processors, priorities and options.

    Args:
        registry: Processor registry (defaults to the built-in processors).
        cache_manager: Shared cache manager handed to every processor and
            to the pipeline.
    """

    def __init__(
        self,
        registry: ProcessorRegistry | None = None,
        cache_manager: CacheManager | None = None,
    ) -> None:
        self.registry = registry or default_processor_registry()
        self.cache_manager = cache_manager or CacheManager()
        self._queue: PriorityQueue[tuple[ProcessorKind, dict[str, Any]]] = PriorityQueue()
        self._options: dict[str, Any] = {}

    def with_processor(
        self, kind: ProcessorKind | str, priority: int = 50, **config: Any
    ) -> PipelineBuilder:
        resolved = self.registry.resolve_kind(kind)
        self.registry.get(resolved)
        self._queue.push((resolved, config), priority)
        return self

    def with_entities(self, model_name: str = "en_core_web_sm", priority: int = 10) -> PipelineBuilder:
        return self.with_processor(ProcessorKind.ENTITY, priority, model_name=model_name)

    def with_semantics(self, priority: int = 20) -> PipelineBuilder:
        return self.with_processor(ProcessorKind.SEMANTIC, priority)

    def configure(self, **options: Any) -> PipelineBuilder:
        """Merge pipeline options (see PipelineConfig)."""
        self._options.update(options)
        return self

    def with_caching(self, ttl: float | None = None) -> PipelineBuilder:
        return self.configure(enable_caching=True, cache_ttl=ttl)

    def with_parallel_processing(self, timeout_s: float | None = None) -> PipelineBuilder:
        self.configure(parallel_processing=True)
        if timeout_s is not None:
            self.configure(parallel_timeout_s=timeout_s)
        return self

    def output_format(self, fmt: OutputFormat) -> PipelineBuilder:
        return self.configure(output_format=fmt)

    def build(self) -> Pipeline:
        """Instantiate processors in priority order and return the Pipeline.

        Raises:
            ConfigurationError: If no processor was added or options are invalid.
        """
        if not self._queue:
            raise ConfigurationError("Pipeline needs at least one processor")
        try:
            config = PipelineConfig(**self._options)
        except ValueError as e:
            raise ConfigurationError(f"Invalid pipeline options: {e}") from e

        stages: list[PipelineStage] = []
        for (kind, proc_config), priority in self._queue.copy().drain():
            processor = self.registry.create(
                kind,
                cache_manager=self.cache_manager,
                enable_cache=config.enable_caching,
                **proc_config,
            )
            stages.append(PipelineStage(kind=kind, priority=int(priority), processor=processor))

        logger.info(
            "Built pipeline: %s (parallel=%s, caching=%s)",
            [f"{s.kind.value}@{s.priority}" for s in stages],
            config.parallel_processing,
            config.enable_caching,
        )
        return Pipeline(stages, config, self.cache_manager)


def build_pipeline_from_settings(
    settings: Settings,
    registry: ProcessorRegistry | None = None,
    cache_manager: CacheManager | None = None,
) -> Pipeline:
    """Build the pipeline described by the flat settings map."""
    builder = PipelineBuilder(registry=registry, cache_manager=cache_manager)
    for name in settings.enabled_processors_list:
        kind = builder.registry.resolve_kind(name)
        if kind is ProcessorKind.ENTITY:
            builder.with_processor(
                kind,
                settings.entity_priority,
                model_name=settings.entity_model,
                prefix_chars=settings.processor_cache_prefix_chars,
            )
        else:
            builder.with_processor(
                kind,
                settings.semantic_priority,
                prefix_chars=settings.processor_cache_prefix_chars,
            )
    return builder.configure(
        enable_caching=settings.enable_caching,
        parallel_processing=settings.parallel_processing,
        parallel_timeout_s=settings.parallel_timeout_s,
        output_format=settings.output_format,
        feature_dimensions=settings.feature_dimensions,
        max_keywords=settings.max_keywords,
    ).build()
