# tests/unit/rag/test_search.py - v1
"""Tests for rag/search.py - signal collection, blending, thresholds."""

from __future__ import annotations

import pytest

from blueprints_rag.rag.index.hybrid_index import HybridIndex
from blueprints_rag.rag.models import IndexEntry
from blueprints_rag.rag.search import (
    EXACT_WEIGHT,
    PARTIAL_WEIGHT,
    RANKED_WEIGHT,
    SPATIAL_WEIGHT,
    hybrid_search,
    query_words,
)


def _index(*entries: IndexEntry) -> HybridIndex:
    index = HybridIndex()
    for entry in entries:
        index.upsert(entry)
    return index


class TestQueryWords:
    def test_lowercase_strip_dedupe(self):
        assert query_words("Ruby, ruby! singleton?") == ["ruby", "singleton"]

    def test_empty(self):
        assert query_words("  ...  ") == []


class TestRanking:
    def test_exact_beats_prefix(self):
        index = _index(
            IndexEntry(blueprint_id="1", terms=["ruby"], relevance=0.5),
            IndexEntry(blueprint_id="2", terms=["rubyist"], relevance=0.5),
        )
        hits, _ = hybrid_search(index, "ruby", None, relevance_threshold=0.0)
        assert [h.blueprint_id for h in hits] == ["1", "2"]
        assert hits[0].match_types == ["exact", "ranked"]
        assert hits[1].match_types == ["partial", "ranked"]
        assert hits[0].score == pytest.approx(EXACT_WEIGHT + RANKED_WEIGHT * 0.5)
        assert hits[1].score == pytest.approx(PARTIAL_WEIGHT + RANKED_WEIGHT * 0.5)
        assert hits[1].matched_terms == ["rubyist"]

    def test_exact_counts_per_query_word(self):
        index = _index(IndexEntry(blueprint_id="1", terms=["ruby", "singleton"]))
        hits, _ = hybrid_search(index, "ruby singleton", None, relevance_threshold=0.0)
        assert hits[0].exact_matches == 2

    def test_spatial_signal(self):
        index = _index(
            IndexEntry(blueprint_id="near", point=(0.0, 0.0)),
            IndexEntry(blueprint_id="far", point=(3.0, 0.0)),
        )
        hits, stats = hybrid_search(index, "zzz", [0.0, 0.0, 9.9], k=2, relevance_threshold=0.0)
        by_id = {h.blueprint_id: h for h in hits}
        assert by_id["near"].spatial_similarity == pytest.approx(1.0)
        assert by_id["far"].spatial_similarity == pytest.approx(0.25)
        assert by_id["near"].score == pytest.approx(SPATIAL_WEIGHT)
        assert stats.spatial_candidates == 2

    def test_short_vector_skips_spatial(self):
        index = _index(IndexEntry(blueprint_id="1", point=(0.0, 0.0)))
        _, stats = hybrid_search(index, "x", [1.0], relevance_threshold=0.0)
        assert stats.spatial_candidates == 0

    def test_ties_broken_by_id(self):
        index = _index(
            IndexEntry(blueprint_id="b", terms=["ruby"]),
            IndexEntry(blueprint_id="a", terms=["ruby"]),
        )
        hits, _ = hybrid_search(index, "ruby", None, relevance_threshold=0.0)
        assert [h.blueprint_id for h in hits] == ["a", "b"]


class TestThreshold:
    def _corpus(self) -> HybridIndex:
        return _index(
            IndexEntry(blueprint_id="exact", terms=["ruby", "gem"], relevance=0.9),
            IndexEntry(blueprint_id="partial", terms=["rubyist"], relevance=0.2),
            IndexEntry(blueprint_id="ranked", terms=["python"], relevance=0.8),
        )

    def test_raising_threshold_never_adds_results(self):
        index = self._corpus()
        previous: set[str] | None = None
        for threshold in (0.0, 0.2, 0.4, 0.6, 0.8, 1.0, 1.5):
            hits, _ = hybrid_search(index, "ruby gem", None, relevance_threshold=threshold)
            ids = {h.blueprint_id for h in hits}
            assert all(h.score >= threshold for h in hits)
            if previous is not None:
                assert ids <= previous
            previous = ids

    def test_default_threshold_filters_weak_hits(self):
        hits, stats = hybrid_search(self._corpus(), "ruby gem", None)
        assert [h.blueprint_id for h in hits] == ["exact"]
        assert stats.total_found == 3
        assert stats.after_threshold == 1
        assert stats.final_count == 1

    def test_max_results_cap(self):
        index = _index(*(IndexEntry(blueprint_id=str(i), terms=["ruby"]) for i in range(20)))
        hits, stats = hybrid_search(index, "ruby", None, max_results=5, relevance_threshold=0.0)
        assert len(hits) == 5
        assert stats.after_threshold == 20
        assert stats.final_count == 5

    def test_empty_index(self):
        hits, stats = hybrid_search(HybridIndex(), "ruby", [0.1, 0.2])
        assert hits == []
        assert stats.total_found == 0
