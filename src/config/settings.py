# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for processor selection, model names, cache TTLs,
search thresholds and logging. The flat options map handed over by a host
application is passed straight to ``Settings(**options)``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PROCESSORS = ("entity", "semantic")


class ConfigurationError(Exception):
    """Raised when configuration is missing or internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Processors ===
    enabled_processors: str = "entity,semantic"
    entity_model: str = "en_core_web_sm"
    entity_priority: int = 10
    semantic_priority: int = 20
    processor_cache_prefix_chars: int = 1000

    # === Pipeline ===
    enable_caching: bool = True
    parallel_processing: bool = False
    parallel_timeout_s: float = 5.0
    output_format: Literal["minimal", "summary", "detailed"] = "detailed"
    feature_dimensions: int = 768
    max_keywords: int = 20

    # === Embeddings ===
    embedding_provider: str = "sentence_transformers"
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_dimensions: int | None = None
    embedding_normalize: bool = False
    embedding_timeout_s: float = 30.0
    embedding_max_chars: int = 512
    openai_api_key: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # === Cache ===
    cache_max_entries: int = 1000
    cache_ttl_processor_s: float = 86_400
    cache_ttl_embedding_s: float = 604_800
    cache_ttl_pipeline_s: float = 43_200
    cache_sweep_interval_s: float = 3_600

    # === Search ===
    search_max_results: int = 10
    search_relevance_threshold: float = 0.6
    search_k: int = 5
    similarity_k: int = 10
    similarity_threshold: float = 0.7
    spatial_rebuild_threshold: int = 32

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    def __init__(self, **values: Any) -> None:
        # Field-level failures surface as ConfigurationError like the
        # cross-field checks below.
        try:
            super().__init__(**values)
        except ValidationError as exc:
            raise ConfigurationError(str(exc)) from exc

    # --- Validators ---

    @field_validator("search_relevance_threshold", "similarity_threshold")
    @classmethod
    def validate_unit_interval(cls, v: float) -> float:  # noqa: N805
        if not 0.0 <= v <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        processors = self.enabled_processors_list
        if not processors:
            errors.append("ENABLED_PROCESSORS must name at least one processor")
        unknown = [p for p in processors if p not in KNOWN_PROCESSORS]
        if unknown:
            errors.append(
                f"Unknown processors {unknown}; available: {', '.join(KNOWN_PROCESSORS)}"
            )

        for name in (
            "cache_max_entries",
            "feature_dimensions",
            "max_keywords",
            "search_max_results",
            "search_k",
            "similarity_k",
            "spatial_rebuild_threshold",
            "processor_cache_prefix_chars",
        ):
            if getattr(self, name) <= 0:
                errors.append(f"{name.upper()} must be > 0")

        for name in (
            "cache_ttl_processor_s",
            "cache_ttl_embedding_s",
            "cache_ttl_pipeline_s",
            "cache_sweep_interval_s",
            "parallel_timeout_s",
            "embedding_timeout_s",
        ):
            if getattr(self, name) <= 0:
                errors.append(f"{name.upper()} must be > 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def enabled_processors_list(self) -> list[str]:
        """Parse comma-separated processor names."""
        return [p.strip() for p in self.enabled_processors.split(",") if p.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (flat options map from the host).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is invalid or inconsistent.
    """
    return Settings(**overrides)
