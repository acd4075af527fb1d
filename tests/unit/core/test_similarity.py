# tests/unit/core/test_similarity.py - v1
"""Tests for core/similarity.py - cosine similarity and normalization."""

from __future__ import annotations

import math

import pytest

from blueprints_rag.core.similarity import cosine_similarity, normalize_vector


class TestCosineSimilarity:
    def test_identical(self):
        assert cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0, 3.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 1.0], [-1.0, -1.0]) == pytest.approx(-1.0)

    @pytest.mark.parametrize(
        ("a", "b"),
        [([], [1.0]), ([0.0, 0.0], [1.0, 1.0]), ([1.0, 2.0], [1.0, 2.0, 3.0])],
    )
    def test_degenerate_inputs(self, a, b):
        assert cosine_similarity(a, b) == 0.0


class TestNormalize:
    def test_unit_length(self):
        vector = normalize_vector([3.0, 4.0])
        assert vector == pytest.approx([0.6, 0.8])
        assert math.hypot(*vector) == pytest.approx(1.0)

    def test_zero_vector_unchanged(self):
        assert normalize_vector([0.0, 0.0]) == [0.0, 0.0]
