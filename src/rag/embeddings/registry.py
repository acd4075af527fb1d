# src/rag/embeddings/registry.py - v1
"""Embedding provider registry: provider name -> class (or class path).

Built-in providers are registered by dotted class path and imported only
when created, so optional SDKs are never imported at startup.
"""

from __future__ import annotations

import importlib
import logging
from typing import Any

from blueprints_rag.cache.cache_manager import CacheManager
from blueprints_rag.config.settings import ConfigurationError, Settings
from blueprints_rag.rag.embeddings.base_provider import EmbeddingProvider

logger = logging.getLogger(__name__)

BUILTIN_PROVIDERS: dict[str, str] = {
    "sentence_transformers": (
        "blueprints_rag.rag.embeddings.sentence_tf_provider.SentenceTransformerProvider"
    ),
    "openai": "blueprints_rag.rag.embeddings.openai_provider.OpenAIProvider",
    "ollama": "blueprints_rag.rag.embeddings.ollama_provider.OllamaProvider",
}


class ProviderNotFoundError(ConfigurationError):
    """Raised when an embedding provider is not registered."""


class ProviderRegistry:
    def __init__(self) -> None:
        self._providers: dict[str, type[EmbeddingProvider] | str] = {}

    def register(self, name: str, provider: type[EmbeddingProvider] | str) -> None:
        """Register a provider class or its fully qualified class path."""
        self._providers[name] = provider

    def unregister(self, name: str) -> None:
        self._providers.pop(name, None)

    def is_available(self, name: str) -> bool:
        return name in self._providers

    @property
    def available_providers(self) -> list[str]:
        return sorted(self._providers)

    def create(self, name: str, **options: Any) -> EmbeddingProvider:
        """Instantiate provider ``name``.

        Raises:
            ProviderNotFoundError: If ``name`` is not registered.
        """
        entry = self._providers.get(name)
        if entry is None:
            raise ProviderNotFoundError(
                f"Unsupported embedding provider: {name!r}. "
                f"Available: {', '.join(self.available_providers)}"
            )
        cls = _import_class(entry) if isinstance(entry, str) else entry
        logger.debug("Creating embedding provider: %s", name)
        return cls(**options)


def default_provider_registry() -> ProviderRegistry:
    registry = ProviderRegistry()
    for name, class_path in BUILTIN_PROVIDERS.items():
        registry.register(name, class_path)
    return registry


def create_provider_from_settings(
    settings: Settings,
    registry: ProviderRegistry | None = None,
    cache_manager: CacheManager | None = None,
) -> EmbeddingProvider:
    """Instantiate the configured embedding provider."""
    registry = registry or default_provider_registry()
    kwargs: dict[str, Any] = {
        "model": settings.embedding_model,
        "dimensions": settings.embedding_dimensions,
        "normalize": settings.embedding_normalize,
        "max_chars": settings.embedding_max_chars,
        "timeout_s": settings.embedding_timeout_s,
        "cache_manager": cache_manager,
    }
    if settings.embedding_provider == "openai":
        kwargs["api_key"] = settings.openai_api_key
    elif settings.embedding_provider == "ollama":
        kwargs["base_url"] = settings.ollama_base_url
    return registry.create(settings.embedding_provider, **kwargs)


def _import_class(class_path: str) -> type[EmbeddingProvider]:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    try:
        module = importlib.import_module(module_path)
    except ImportError as e:
        raise ProviderNotFoundError(f"Cannot import provider module {module_path}: {e}") from e
    cls = getattr(module, class_name, None)
    if cls is None:
        raise ProviderNotFoundError(f"Class {class_name} not found in {module_path}")
    return cls
