# src/rag/search.py - v1
"""Hybrid search over a HybridIndex.

Signals per blueprint id:
  exact    - query words found verbatim in the prefix index (0.5 each)
  partial  - longer indexed terms starting with a query word (0.2 each)
  spatial  - 1 / (1 + distance) of the 2-D nearest neighbours (x 0.4)
  ranked   - relevance of the top entries of the relevance queue (x 0.3)
The blend is fixed and linear; results are sorted by score, filtered by
the relevance threshold, then capped.
"""

from __future__ import annotations

import logging
import string
from collections import defaultdict
from dataclasses import dataclass, field

from blueprints_rag.rag.index.hybrid_index import HybridIndex
from blueprints_rag.rag.index.prefix_index import PrefixIndex
from blueprints_rag.rag.models import SearchHit, SearchStats

logger = logging.getLogger(__name__)

EXACT_WEIGHT = 0.5
PARTIAL_WEIGHT = 0.2
SPATIAL_WEIGHT = 0.4
RANKED_WEIGHT = 0.3


@dataclass
class SearchSignals:
    exact: dict[str, list[str]] = field(default_factory=lambda: defaultdict(list))
    partial: dict[str, list[str]] = field(default_factory=lambda: defaultdict(list))
    spatial: dict[str, float] = field(default_factory=dict)
    ranked: dict[str, float] = field(default_factory=dict)

    def ids(self) -> set[str]:
        return set(self.exact) | set(self.partial) | set(self.spatial) | set(self.ranked)


def query_words(query: str) -> list[str]:
    words = (w.strip(string.punctuation) for w in query.lower().split())
    return list(dict.fromkeys(w for w in words if w))


def collect_signals(
    index: HybridIndex,
    words: list[str],
    query_vector: list[float] | None,
    k: int,
    max_results: int,
) -> SearchSignals:
    signals = SearchSignals()
    for word in words:
        normalized = PrefixIndex.normalize(word)
        for blueprint_id in index.exact(normalized):
            signals.exact[blueprint_id].append(normalized)
        for term, ids in index.prefix(normalized).items():
            if term == normalized:
                continue
            for blueprint_id in ids:
                signals.partial[blueprint_id].append(term)

    if query_vector is not None and len(query_vector) >= 2:
        for distance, blueprint_id in index.nearest((query_vector[0], query_vector[1]), k):
            signals.spatial[blueprint_id] = 1.0 / (1.0 + distance)

    signals.ranked = dict(index.ranked(max_results))
    return signals


def combine(signals: SearchSignals) -> list[SearchHit]:
    hits: list[SearchHit] = []
    for blueprint_id in signals.ids():
        exact = signals.exact.get(blueprint_id, [])
        partial = signals.partial.get(blueprint_id, [])
        spatial = signals.spatial.get(blueprint_id, 0.0)
        relevance = signals.ranked.get(blueprint_id, 0.0)
        match_types = []
        if exact:
            match_types.append("exact")
        if partial:
            match_types.append("partial")
        if blueprint_id in signals.spatial:
            match_types.append("spatial")
        if blueprint_id in signals.ranked:
            match_types.append("ranked")
        hits.append(
            SearchHit(
                blueprint_id=blueprint_id,
                score=(
                    EXACT_WEIGHT * len(exact)
                    + PARTIAL_WEIGHT * len(partial)
                    + SPATIAL_WEIGHT * spatial
                    + RANKED_WEIGHT * relevance
                ),
                match_types=match_types,
                exact_matches=len(exact),
                partial_matches=len(partial),
                matched_terms=list(dict.fromkeys(exact + partial)),
                spatial_similarity=spatial,
                relevance=relevance,
            )
        )
    hits.sort(key=lambda h: (-h.score, h.blueprint_id))
    return hits


def hybrid_search(
    index: HybridIndex,
    query: str,
    query_vector: list[float] | None,
    *,
    k: int = 5,
    max_results: int = 10,
    relevance_threshold: float = 0.6,
) -> tuple[list[SearchHit], SearchStats]:
    signals = collect_signals(index, query_words(query), query_vector, k, max_results)
    hits = combine(signals)
    kept = [h for h in hits if h.score >= relevance_threshold]
    final = kept[:max_results]
    stats = SearchStats(
        exact_candidates=len(signals.exact),
        partial_candidates=len(signals.partial),
        spatial_candidates=len(signals.spatial),
        ranked_candidates=len(signals.ranked),
        total_found=len(hits),
        after_threshold=len(kept),
        final_count=len(final),
    )
    return final, stats
