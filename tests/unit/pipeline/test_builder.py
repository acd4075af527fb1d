# tests/unit/pipeline/test_builder.py - v1
"""Tests for pipeline/builder.py - PipelineBuilder and settings wiring."""

from __future__ import annotations

import pytest

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.config.settings import ConfigurationError, Settings
from blueprints_rag.pipeline.builder import PipelineBuilder, build_pipeline_from_settings
from blueprints_rag.processors.registry import ProcessorKind, ProcessorRegistry


class TestOrdering:
    def test_ascending_priority(self, stub_registry: ProcessorRegistry):
        pipeline = (
            PipelineBuilder(stub_registry)
            .with_processor("semantic", priority=5)
            .with_processor("entity", priority=10)
            .build()
        )
        assert pipeline.processor_kinds == ["semantic", "entity"]
        assert [s.priority for s in pipeline.stages] == [5, 10]

    def test_equal_priority_keeps_insertion_order(self, stub_registry: ProcessorRegistry):
        pipeline = (
            PipelineBuilder(stub_registry)
            .with_processor(ProcessorKind.SEMANTIC, priority=1)
            .with_processor(ProcessorKind.ENTITY, priority=1)
            .build()
        )
        assert pipeline.processor_kinds == ["semantic", "entity"]

    def test_shortcuts(self, stub_registry: ProcessorRegistry):
        pipeline = PipelineBuilder(stub_registry).with_semantics().with_entities().build()
        assert pipeline.processor_kinds == ["entity", "semantic"]
        assert pipeline.stages[0].processor.config == {"model_name": "en_core_web_sm"}


class TestValidation:
    def test_no_processors(self, stub_registry: ProcessorRegistry):
        with pytest.raises(ConfigurationError):
            PipelineBuilder(stub_registry).build()

    def test_unknown_kind(self, stub_registry: ProcessorRegistry):
        with pytest.raises(ConfigurationError):
            PipelineBuilder(stub_registry).with_processor("sentiment")

    def test_unregistered_kind(self):
        registry = ProcessorRegistry()
        with pytest.raises(ConfigurationError):
            PipelineBuilder(registry).with_processor("entity")

    def test_invalid_option(self, stub_registry: ProcessorRegistry):
        builder = PipelineBuilder(stub_registry).with_entities().output_format("xml")  # type: ignore[arg-type]
        with pytest.raises(ConfigurationError):
            builder.build()


class TestOptions:
    def test_shared_cache_and_flags(self, stub_registry: ProcessorRegistry):
        cache = CacheManager()
        pipeline = (
            PipelineBuilder(stub_registry, cache_manager=cache)
            .with_entities()
            .with_parallel_processing(timeout_s=1.5)
            .output_format("minimal")
            .configure(enable_caching=False)
            .build()
        )
        assert pipeline.cache_manager is cache
        assert pipeline.stages[0].processor.cache_manager is cache
        assert pipeline.stages[0].processor.enable_cache is False
        assert pipeline.config.parallel_processing is True
        assert pipeline.config.parallel_timeout_s == 1.5
        assert pipeline.config.output_format == "minimal"

    def test_with_caching_ttl(self, stub_registry: ProcessorRegistry):
        pipeline = PipelineBuilder(stub_registry).with_entities().with_caching(ttl=5).build()
        assert pipeline.cache_manager.namespace("pipeline", pipeline.config_hash).ttl == 5

    def test_config_hash_tracks_configuration(self, stub_registry: ProcessorRegistry):
        a = PipelineBuilder(stub_registry).with_entities().build()
        b = PipelineBuilder(stub_registry).with_entities().build()
        c = PipelineBuilder(stub_registry).with_entities().with_semantics().build()
        assert a.config_hash == b.config_hash
        assert a.config_hash != c.config_hash


class TestFromSettings:
    def test_enabled_processors(self, stub_registry: ProcessorRegistry):
        settings = Settings(_env_file=None, enabled_processors="semantic")
        pipeline = build_pipeline_from_settings(settings, registry=stub_registry)
        assert pipeline.processor_kinds == ["semantic"]

    def test_priorities_and_options(self, stub_registry: ProcessorRegistry):
        settings = Settings(
            _env_file=None,
            entity_priority=30,
            semantic_priority=1,
            processor_cache_prefix_chars=200,
            max_keywords=7,
        )
        pipeline = build_pipeline_from_settings(settings, registry=stub_registry)
        assert pipeline.processor_kinds == ["semantic", "entity"]
        assert all(s.processor.prefix_chars == 200 for s in pipeline.stages)
        assert pipeline.config.max_keywords == 7
