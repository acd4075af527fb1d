# tests/unit/core/test_models.py - v1
"""Tests for core/models.py - Blueprint, analysis fragments and record views."""

from __future__ import annotations

import pytest

from blueprints_rag.core.models import (
    AnalysisFragment,
    AnalysisRecord,
    AnalysisScores,
    Blueprint,
    Keyword,
)


class TestBlueprint:
    def test_text_content_skips_empty_parts(self):
        bp = Blueprint(name="Parser", code="def parse(): pass", tags=["python", "io"])
        assert bp.text_content() == "Parser def parse(): pass python io"

    def test_resolved_id_prefers_stored_id(self):
        assert Blueprint(id="bp-7", name="x").resolved_id() == "bp-7"

    def test_resolved_id_from_content(self):
        bp = Blueprint(name="x")
        assert bp.resolved_id() == bp.content_hash()[:8]
        assert Blueprint(name="x").resolved_id() == bp.resolved_id()
        assert Blueprint(name="y").resolved_id() != bp.resolved_id()

    def test_tags_must_be_strings(self):
        with pytest.raises(ValueError):
            Blueprint.model_validate({"name": "x", "tags": 5})


class TestFragments:
    def test_keyword_canonical(self):
        assert Keyword(text="  Event   Loop ").canonical == "event loop"

    def test_fragment_ok(self):
        assert AnalysisFragment(processor="entity").ok
        assert not AnalysisFragment(processor="entity", error="boom").ok

    def test_scores_are_bounded(self):
        with pytest.raises(ValueError):
            AnalysisScores(quality=1.5)


class TestAnalysisRecord:
    def _record(self) -> AnalysisRecord:
        record = AnalysisRecord(
            source_hash="abc",
            processors_used=["entity", "semantic"],
            fragments={
                "entity": AnalysisFragment(processor="entity"),
                "semantic": AnalysisFragment(
                    processor="semantic", complexity_metrics={"lexical_diversity": 0.4}
                ),
            },
        )
        record.combined_analysis.keywords = [Keyword(text=f"k{i}") for i in range(8)]
        return record

    def test_complexity_metric(self):
        record = self._record()
        assert record.complexity_metric("lexical_diversity") == 0.4
        assert record.complexity_metric("missing") is None

    def test_complete(self):
        record = self._record()
        assert record.complete is False
        record.processors_enabled = 2
        assert record.complete is True
        record.fragments["semantic"].error = "ProcessingError: down"
        assert record.complete is False
        record.processors_enabled = 3
        record.fragments["semantic"].error = None
        assert record.complete is False

    def test_minimal_view(self):
        view = self._record().view("minimal")
        assert set(view) == {"keywords", "entities", "summary_scores"}
        assert len(view["keywords"]) == 5

    def test_summary_view(self):
        view = self._record().view("summary")
        assert view["processors_used"] == ["entity", "semantic"]
        assert len(view["combined_analysis"]["keywords"]) == 8
        assert "processing_timestamp" in view

    def test_detailed_view_is_full_record(self):
        record = self._record()
        view = record.view()
        assert view["source_hash"] == "abc"
        assert set(view["fragments"]) == {"entity", "semantic"}
        assert AnalysisRecord.model_validate(view) == record
