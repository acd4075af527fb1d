# src/pipeline/merger.py - v1
"""Merge processor fragments into one AnalysisRecord.

Keywords are deduplicated by canonical text (the highest-scoring duplicate
survives) and truncated to the top ``max_keywords``. The feature vector is
``[keywords/100, entities/50, concepts/30, lexical_diversity,
semantic_density]`` zero-padded to the configured dimension.
"""

from __future__ import annotations

from blueprints_rag.core.models import (
    AnalysisFragment,
    AnalysisRecord,
    AnalysisScores,
    CombinedAnalysis,
    Keyword,
)

KEYWORD_DENOMINATOR = 100.0
ENTITY_DENOMINATOR = 50.0
CONCEPT_DENOMINATOR = 30.0
COMPLEXITY_FEATURES = ("lexical_diversity", "semantic_density")


def dedupe_keywords(keywords: list[Keyword], limit: int = 20) -> list[Keyword]:
    """Keep one keyword per canonical text, the one with the max score."""
    best: dict[str, Keyword] = {}
    for keyword in keywords:
        key = keyword.canonical
        if not key:
            continue
        current = best.get(key)
        if current is None or keyword.score > current.score:
            best[key] = keyword
    ranked = sorted(best.values(), key=lambda k: -k.score)
    return ranked[:limit]


def combine(fragments: list[AnalysisFragment], max_keywords: int = 20) -> CombinedAnalysis:
    keywords: list[Keyword] = []
    combined = CombinedAnalysis()
    for fragment in fragments:
        keywords.extend(fragment.keywords)
        combined.entities.extend(fragment.entities)
        combined.concepts.extend(fragment.concepts)
    combined.keywords = dedupe_keywords(keywords, max_keywords)
    return combined


def feature_vector(record: AnalysisRecord, dimensions: int) -> list[float]:
    analysis = record.combined_analysis
    vector = [
        len(analysis.keywords) / KEYWORD_DENOMINATOR,
        len(analysis.entities) / ENTITY_DENOMINATOR,
        len(analysis.concepts) / CONCEPT_DENOMINATOR,
    ]
    for name in COMPLEXITY_FEATURES:
        value = record.complexity_metric(name)
        vector.append(float(value) if value is not None else 0.0)
    vector = vector[:dimensions]
    vector.extend([0.0] * (dimensions - len(vector)))
    return vector


def compute_scores(record: AnalysisRecord, text_length: int) -> AnalysisScores:
    analysis = record.combined_analysis
    density = analysis.feature_count / text_length * 1000 if text_length else 0.0
    ran = sum(1 for f in record.fragments.values() if f.ok)
    completeness = ran / record.processors_enabled if record.processors_enabled else 0.0
    non_empty = sum(
        1 for part in (analysis.keywords, analysis.entities, analysis.concepts) if part
    )
    return AnalysisScores(
        information_density=min(1.0, density),
        completeness=min(1.0, completeness),
        quality=non_empty / 3.0,
    )


def merge_into(
    record: AnalysisRecord,
    fragments: list[AnalysisFragment],
    *,
    max_keywords: int = 20,
    dimensions: int = 768,
) -> AnalysisRecord:
    """Fill ``record`` step by step, so a failure leaves the earlier steps in place."""
    for fragment in fragments:
        record.fragments[fragment.processor] = fragment
        record.processors_used.append(fragment.processor)
    record.combined_analysis = combine(fragments, max_keywords)
    record.feature_vector = feature_vector(record, dimensions)
    record.scores = compute_scores(record, record.text_length)
    return record
