# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Settings isolated from any local .env, a manual clock, stub processors
registered under the built-in kinds, a deterministic embedding provider
and sample blueprints. No network, no model downloads.
"""

from __future__ import annotations

import pytest

from blueprints_rag.cache.cache_factory import create_cache_manager
from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.config.settings import Settings
from blueprints_rag.core.models import Blueprint
from blueprints_rag.processors.registry import ProcessorKind, ProcessorRegistry
from blueprints_rag.rag.service import RagService
from fakes import (
    JS_OBSERVER,
    PYTHON_FACTORY,
    RUBY_SINGLETON,
    FakeClock,
    FakeProvider,
    StubEntityProcessor,
    StubSemanticProcessor,
)


# === FIXTURES: Infrastructure ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def cache_manager(settings: Settings) -> CacheManager:
    return create_cache_manager(settings)


@pytest.fixture
def stub_registry() -> ProcessorRegistry:
    registry = ProcessorRegistry()
    registry.register(ProcessorKind.ENTITY, StubEntityProcessor)
    registry.register(ProcessorKind.SEMANTIC, StubSemanticProcessor)
    return registry


@pytest.fixture
def fake_provider(cache_manager: CacheManager) -> FakeProvider:
    return FakeProvider(cache_manager=cache_manager)


@pytest.fixture
def service(
    settings: Settings,
    cache_manager: CacheManager,
    stub_registry: ProcessorRegistry,
    fake_provider: FakeProvider,
) -> RagService:
    return RagService(
        settings,
        cache_manager=cache_manager,
        processor_registry=stub_registry,
        provider=fake_provider,
    )


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_blueprint() -> Blueprint:
    return Blueprint(
        id="bp-ruby",
        name="Ruby singleton",
        description="Lazy singleton holding application configuration",
        code=RUBY_SINGLETON,
        tags=["ruby", "pattern"],
    )


@pytest.fixture
def sample_blueprints(sample_blueprint: Blueprint) -> list[Blueprint]:
    return [
        sample_blueprint,
        Blueprint(
            id="bp-python",
            name="Python parser factory",
            description="Factory returning a parser for each input kind",
            code=PYTHON_FACTORY,
            tags=["python", "factory"],
        ),
        Blueprint(
            id="bp-js",
            name="Event observer",
            description="Minimal observer with subscribe and notify",
            code=JS_OBSERVER,
            tags=["javascript", "events"],
        ),
    ]
