# src/core/models.py - v2
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
Analysis records are cached as JSON and rehydrated on every hit, so a
cached record is never mutated in place.
"""

from __future__ import annotations

import hashlib
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

OutputFormat = Literal["minimal", "summary", "detailed"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# === BLUEPRINT ===


class Blueprint(BaseModel):
    """A stored code artifact supplied by the persistent-store collaborator."""

    id: str | None = None
    name: str = ""
    description: str = ""
    code: str = ""
    tags: list[str] = Field(default_factory=list)
    created_at: datetime | None = None

    def text_content(self) -> str:
        """Concatenate the searchable parts: name, description, code, tags."""
        parts = [self.name, self.description, self.code, " ".join(self.tags)]
        return " ".join(p for p in parts if p)

    def content_hash(self) -> str:
        return hashlib.md5(self.text_content().encode("utf-8")).hexdigest()  # noqa: S324

    def resolved_id(self) -> str:
        """Return the stored id, or a short content-derived id."""
        if self.id:
            return str(self.id)
        return self.content_hash()[:8]


# === ANALYSIS FRAGMENTS ===


class Keyword(BaseModel):
    """Keyword candidate with a relevance score."""

    text: str
    score: float = 0.0
    lemma: str | None = None
    pos: str | None = None

    @property
    def canonical(self) -> str:
        """Dedup key: case- and whitespace-insensitive text."""
        return " ".join(self.text.lower().split())


class Entity(BaseModel):
    """Named entity span."""

    text: str
    label: str = ""
    start: int = 0
    end: int = 0
    confidence: float = 0.8


class Concept(BaseModel):
    """Semantic concept attached to a word."""

    word: str
    concept: str = ""
    category: str = "general"
    hypernym_chain: list[str] = Field(default_factory=list)
    specificity: float = 0.5
    score: float = 0.0


class AnalysisFragment(BaseModel):
    """Output of a single processor run.

    ``details`` carries the processor-specific sections (tokens, POS tags,
    morphology, ...). In fallback mode every section is still present, with
    empty or estimated values, and ``fallback`` is set.
    """

    processor: str
    keywords: list[Keyword] = Field(default_factory=list)
    entities: list[Entity] = Field(default_factory=list)
    concepts: list[Concept] = Field(default_factory=list)
    complexity_metrics: dict[str, float] = Field(default_factory=dict)
    details: dict[str, Any] = Field(default_factory=dict)
    fallback: bool = False
    error: str | None = None
    processing_time_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


# === ANALYSIS RECORD ===


class CombinedAnalysis(BaseModel):
    """Merged, deduplicated view over all fragments."""

    keywords: list[Keyword] = Field(default_factory=list)
    entities: list[Entity] = Field(default_factory=list)
    concepts: list[Concept] = Field(default_factory=list)

    @property
    def feature_count(self) -> int:
        return len(self.keywords) + len(self.entities) + len(self.concepts)


class AnalysisScores(BaseModel):
    """Quality scores, each clamped to [0, 1]."""

    information_density: float = Field(default=0.0, ge=0.0, le=1.0)
    completeness: float = Field(default=0.0, ge=0.0, le=1.0)
    quality: float = Field(default=0.0, ge=0.0, le=1.0)


class AnalysisRecord(BaseModel):
    """Result of running one text through the Pipeline."""

    source_hash: str
    text_length: int = 0
    processors_used: list[str] = Field(default_factory=list)
    processors_enabled: int = 0
    fragments: dict[str, AnalysisFragment] = Field(default_factory=dict)
    combined_analysis: CombinedAnalysis = Field(default_factory=CombinedAnalysis)
    feature_vector: list[float] = Field(default_factory=list)
    scores: AnalysisScores = Field(default_factory=AnalysisScores)
    created_at: datetime = Field(default_factory=_utcnow)
    error: str | None = None

    @property
    def complete(self) -> bool:
        """Every enabled processor returned an error-free fragment."""
        return (
            self.error is None
            and len(self.fragments) == self.processors_enabled
            and all(f.ok for f in self.fragments.values())
        )

    def complexity_metric(self, name: str) -> float | None:
        """First value reported for ``name`` by any fragment, in run order."""
        for processor in self.processors_used:
            fragment = self.fragments.get(processor)
            if fragment is not None and name in fragment.complexity_metrics:
                return fragment.complexity_metrics[name]
        return None

    def view(self, verbosity: OutputFormat = "detailed") -> dict[str, Any]:
        """Project the record to an output verbosity.

        The three verbosities are views over the same record; nothing is
        recomputed.
        """
        if verbosity == "minimal":
            return {
                "keywords": [
                    k.model_dump() for k in self.combined_analysis.keywords[:5]
                ],
                "entities": [
                    e.model_dump() for e in self.combined_analysis.entities[:3]
                ],
                "summary_scores": self.scores.model_dump(),
            }
        if verbosity == "summary":
            return {
                "processors_used": list(self.processors_used),
                "combined_analysis": self.combined_analysis.model_dump(),
                "analysis_scores": self.scores.model_dump(),
                "processing_timestamp": self.created_at.isoformat(),
            }
        return self.model_dump(mode="json")
