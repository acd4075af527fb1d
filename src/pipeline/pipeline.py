# src/pipeline/pipeline.py - v1
"""Text analysis pipeline: run ordered processors, merge, score, cache.

Execution modes:
  sequential (default): every processor runs, in ascending priority order.
  parallel: all processors start together; the pipeline waits until all
    have finished or ``parallel_timeout_s`` elapses, whichever comes first.
    Processors still running at the deadline are left out of the record and
    lower its ``completeness`` score; the result is best-effort.

Records are cached in the pipeline namespace scoped by a hash of the
pipeline configuration, keyed by the full-text hash. Only complete records
are cached: a record whose merge failed, with a failed processor, or missing
a processor that timed out is returned but recomputed on the next call.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.cache.fingerprint import config_hash, text_hash
from blueprints_rag.core.metrics import MetricsRecorder
from blueprints_rag.core.models import (
    AnalysisFragment,
    AnalysisRecord,
    OutputFormat,
)
from blueprints_rag.pipeline.merger import merge_into
from blueprints_rag.processors.base_processor import BaseProcessor
from blueprints_rag.processors.registry import ProcessorKind

logger = logging.getLogger(__name__)


class PipelineConfig(BaseModel):
    """Pipeline-level options (set through PipelineBuilder.configure)."""

    enable_caching: bool = True
    cache_ttl: float | None = None
    parallel_processing: bool = False
    parallel_timeout_s: float = 5.0
    output_format: OutputFormat = "detailed"
    feature_dimensions: int = 768
    max_keywords: int = 20


@dataclass(frozen=True)
class PipelineStage:
    kind: ProcessorKind
    priority: int
    processor: BaseProcessor


class Pipeline:
    """Ordered processors plus merge/scoring. Built by PipelineBuilder."""

    def __init__(
        self,
        stages: list[PipelineStage],
        config: PipelineConfig | None = None,
        cache_manager: CacheManager | None = None,
    ) -> None:
        self.stages = list(stages)
        self.config = config or PipelineConfig()
        self.cache_manager = cache_manager or CacheManager()
        self.metrics = MetricsRecorder()
        self.config_hash = config_hash(
            {
                **self.config.model_dump(exclude={"cache_ttl"}),
                "stages": [
                    (s.kind.value, s.priority, s.processor.cache_scope) for s in self.stages
                ],
            }
        )
        if self.config.cache_ttl is not None:
            self.cache_manager.namespace("pipeline", self.config_hash).ttl = self.config.cache_ttl

    @property
    def processor_kinds(self) -> list[str]:
        return [s.kind.value for s in self.stages]

    async def process(self, text: str) -> AnalysisRecord:
        """Analyze ``text`` and return the full record.

        Identical text under an unchanged configuration returns the cached
        record. Processor and merge failures are absorbed into the record.
        """
        start = time.perf_counter()
        key = text_hash(text)

        if self.config.enable_caching:
            cached = self.cache_manager.get(
                "pipeline", self.config_hash, key, model=AnalysisRecord
            )
            if cached is not None:
                self.metrics.record("cache_hit", time.perf_counter() - start)
                return cached

        record = AnalysisRecord(
            source_hash=key,
            text_length=len(text),
            processors_enabled=len(self.stages),
        )

        if self.config.parallel_processing:
            fragments = await self._run_parallel(text)
        else:
            fragments = await self._run_sequential(text)

        try:
            merge_into(
                record,
                fragments,
                max_keywords=self.config.max_keywords,
                dimensions=self.config.feature_dimensions,
            )
        except Exception as e:  # noqa: BLE001
            record.error = f"merge failed: {type(e).__name__}: {e}"
            logger.error("Pipeline merge failed: %s", e)
            self.metrics.record(
                "pipeline_processing", time.perf_counter() - start, record.error
            )
            return record

        duration = time.perf_counter() - start
        if self.config.enable_caching and record.complete:
            self.cache_manager.store(
                "pipeline",
                self.config_hash,
                key,
                record,
                processing_time_ms=duration * 1000,
            )
        self.metrics.record("pipeline_processing", duration)
        logger.debug(
            "Pipeline processed %d chars with %s in %.1fms",
            len(text),
            record.processors_used,
            duration * 1000,
        )
        return record

    async def process_formatted(self, text: str) -> dict[str, Any]:
        """Process and project to the configured output verbosity."""
        record = await self.process(text)
        return record.view(self.config.output_format)

    async def _run_sequential(self, text: str) -> list[AnalysisFragment]:
        return [await self._run_stage(stage, text) for stage in self.stages]

    async def _run_parallel(self, text: str) -> list[AnalysisFragment]:
        tasks = [
            asyncio.create_task(self._run_stage(stage, text)) for stage in self.stages
        ]
        done, pending = await asyncio.wait(tasks, timeout=self.config.parallel_timeout_s)
        for task in pending:
            task.cancel()
        if pending:
            late = [s.kind.value for s, t in zip(self.stages, tasks) if t in pending]
            logger.warning(
                "Parallel timeout %.1fs: %s left out of the record",
                self.config.parallel_timeout_s,
                late,
            )
            self.metrics.record(
                "parallel_timeout", self.config.parallel_timeout_s, ",".join(late)
            )
        return [t.result() for t in tasks if t in done]

    async def _run_stage(self, stage: PipelineStage, text: str) -> AnalysisFragment:
        try:
            return await asyncio.to_thread(stage.processor.process, text)
        except Exception as e:  # noqa: BLE001
            logger.error("Processor %s raised: %s", stage.kind.value, e)
            return stage.processor.empty_fragment(error=f"{type(e).__name__}: {e}")

    def statistics(self) -> dict[str, Any]:
        return {
            "config": self.config.model_dump(),
            "config_hash": self.config_hash,
            "processors": [
                {"priority": s.priority, **s.processor.statistics()} for s in self.stages
            ],
            "metrics": self.metrics.snapshot(),
        }
