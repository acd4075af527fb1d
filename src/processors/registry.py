# src/processors/registry.py - v1
"""Processor registry: closed set of processor kinds -> implementation class.

A registry object is built once (``default_processor_registry``) and passed
to PipelineBuilder; kinds are resolved to classes at build time, never per
call.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from blueprints_rag.config.settings import ConfigurationError
from blueprints_rag.processors.base_processor import BaseProcessor

logger = logging.getLogger(__name__)


class ProcessorKind(str, Enum):
    ENTITY = "entity"
    SEMANTIC = "semantic"


class ProcessorRegistry:
    """Mapping ProcessorKind -> BaseProcessor subclass."""

    def __init__(self) -> None:
        self._classes: dict[ProcessorKind, type[BaseProcessor]] = {}

    def register(self, kind: ProcessorKind | str, cls: type[BaseProcessor]) -> None:
        resolved = self.resolve_kind(kind)
        if resolved in self._classes:
            logger.debug("Overriding processor %s with %s", resolved.value, cls.__name__)
        self._classes[resolved] = cls

    @staticmethod
    def resolve_kind(kind: ProcessorKind | str) -> ProcessorKind:
        """Map a kind name to ProcessorKind.

        Raises:
            ConfigurationError: If the name is not a known processor kind.
        """
        try:
            return ProcessorKind(kind)
        except ValueError:
            known = ", ".join(k.value for k in ProcessorKind)
            raise ConfigurationError(
                f"Unknown processor kind: {kind!r}. Available: {known}"
            ) from None

    def get(self, kind: ProcessorKind | str) -> type[BaseProcessor]:
        resolved = self.resolve_kind(kind)
        cls = self._classes.get(resolved)
        if cls is None:
            raise ConfigurationError(f"No processor registered for {resolved.value!r}")
        return cls

    def create(self, kind: ProcessorKind | str, **config: Any) -> BaseProcessor:
        return self.get(kind)(**config)

    @property
    def kinds(self) -> list[ProcessorKind]:
        return list(self._classes)


def default_processor_registry() -> ProcessorRegistry:
    """Registry with the built-in spaCy entity and WordNet semantic processors."""
    from blueprints_rag.processors.entity_processor import EntityProcessor
    from blueprints_rag.processors.semantic_processor import SemanticProcessor

    registry = ProcessorRegistry()
    registry.register(ProcessorKind.ENTITY, EntityProcessor)
    registry.register(ProcessorKind.SEMANTIC, SemanticProcessor)
    return registry
