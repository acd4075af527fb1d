# src/cache/cache_factory.py - v3
"""Factory for CacheManager instantiation from Settings."""

from __future__ import annotations

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.config.settings import Settings


def create_cache_manager(settings: Settings | None = None) -> CacheManager:
    """Build a CacheManager with the configured capacity, TTLs and sweep interval.

    Args:
        settings: Application settings. Defaults to built-in TTLs.

    Returns:
        Configured CacheManager.
    """
    if settings is None:
        return CacheManager()
    return CacheManager(
        max_entries=settings.cache_max_entries,
        ttls={
            "processor": settings.cache_ttl_processor_s,
            "embedding": settings.cache_ttl_embedding_s,
            "pipeline": settings.cache_ttl_pipeline_s,
        },
        sweep_interval_s=settings.cache_sweep_interval_s,
    )
