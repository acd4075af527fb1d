# src/rag/models.py - v1
"""RAG-layer models: code features, index entries, search responses."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from blueprints_rag.core.models import AnalysisRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# === CODE FEATURES ===


class CodeFeatures(BaseModel):
    """Code-specific features, computed once per ingestion."""

    language: str = "unknown"
    line_count: int = 0
    function_count: int = 0
    comment_ratio: float = 0.0
    complexity_score: int = 1
    imports: list[str] = Field(default_factory=list)
    patterns: list[str] = Field(default_factory=list)


class FunctionPatterns(BaseModel):
    count: int = 0
    names: list[str] = Field(default_factory=list)
    avg_name_length: float = 0.0


class ClassPatterns(BaseModel):
    count: int = 0
    names: list[str] = Field(default_factory=list)
    inheritance: list[str] = Field(default_factory=list)


class VariablePatterns(BaseModel):
    count: int = 0
    naming_convention: Literal["snake_case", "camelCase", "mixed", "unknown"] = "unknown"


class CommentAnalysis(BaseModel):
    count: int = 0
    avg_length: float = 0.0
    has_docstrings: bool = False


class CodeComplexity(BaseModel):
    cyclomatic: int = 1
    linguistic: float = 0.0
    combined: float = 0.0


class CodePatterns(BaseModel):
    """Result of analyze_code_patterns."""

    function_patterns: FunctionPatterns = Field(default_factory=FunctionPatterns)
    class_patterns: ClassPatterns = Field(default_factory=ClassPatterns)
    variable_patterns: VariablePatterns = Field(default_factory=VariablePatterns)
    comment_analysis: CommentAnalysis = Field(default_factory=CommentAnalysis)
    complexity_metrics: CodeComplexity = Field(default_factory=CodeComplexity)
    error: str | None = None


# === INDEXING ===


class SearchMetadata(BaseModel):
    searchable_terms: list[str] = Field(default_factory=list)
    categorical_tags: list[str] = Field(default_factory=list)
    relevance_boosters: dict[str, list[str]] = Field(default_factory=dict)
    semantic_clusters: dict[str, list[str]] = Field(default_factory=dict)


class IndexEntry(BaseModel):
    """Derived, fully reconstructible index state for one blueprint."""

    blueprint_id: str
    terms: list[str] = Field(default_factory=list)
    point: tuple[float, float] | None = None
    embedding: list[float] = Field(default_factory=list)
    relevance: float = Field(default=0.0, ge=0.0, le=1.0)
    pattern_keys: list[str] = Field(default_factory=list)


class FallbackFeatures(BaseModel):
    character_count: int = 0
    word_count: int = 0
    line_count: int = 0
    has_code: bool = False
    content_hash: str = ""


class BlueprintAnalysis(BaseModel):
    """Result of RagService.process_blueprint."""

    blueprint_id: str
    record: AnalysisRecord | None = None
    embedding: list[float] = Field(default_factory=list)
    embedding_source: Literal["provider", "features", "none"] = "none"
    code_features: CodeFeatures = Field(default_factory=CodeFeatures)
    search_metadata: SearchMetadata = Field(default_factory=SearchMetadata)
    content_hash: str = ""
    relevance: float = 0.0
    cache_hit: bool = False
    processed_at: datetime = Field(default_factory=_utcnow)
    error: str | None = None
    fallback_features: FallbackFeatures | None = None


# === SEARCH ===


class SearchHit(BaseModel):
    blueprint_id: str
    score: float
    match_types: list[Literal["exact", "partial", "spatial", "ranked"]] = Field(
        default_factory=list
    )
    exact_matches: int = 0
    partial_matches: int = 0
    matched_terms: list[str] = Field(default_factory=list)
    spatial_similarity: float = 0.0
    relevance: float = 0.0


class SearchStats(BaseModel):
    exact_candidates: int = 0
    partial_candidates: int = 0
    spatial_candidates: int = 0
    ranked_candidates: int = 0
    total_found: int = 0
    after_threshold: int = 0
    final_count: int = 0
    processing_time_s: float = 0.0


class SearchResponse(BaseModel):
    query: str
    results: list[SearchHit] = Field(default_factory=list)
    stats: SearchStats = Field(default_factory=SearchStats)
    query_analysis: dict[str, Any] | None = None
    error: str | None = None


class SimilarBlueprint(BaseModel):
    blueprint_id: str
    similarity: float
    distance: float = 0.0
