# tests/unit/rag/index/test_spatial_index.py - v1
"""Tests for rag/index/spatial_index.py - kd-tree plus pending buffer.

Queries are checked against brute force across rebuilds, updates and
removals.
"""

from __future__ import annotations

import math
import random

import pytest

from blueprints_rag.rag.index.spatial_index import SpatialIndex


def _brute_force(points: dict[str, tuple[float, float]], target, k: int) -> list[float]:
    distances = sorted(math.dist(p, target) for p in points.values())
    return distances[:k]


class TestNearest:
    def test_empty_index(self):
        assert SpatialIndex().nearest((0.0, 0.0), 3) == []

    def test_non_positive_k(self):
        index = SpatialIndex()
        index.insert("a", (0.0, 0.0))
        assert index.nearest((0.0, 0.0), 0) == []

    def test_sorted_closest_first(self):
        index = SpatialIndex()
        index.insert("far", (10.0, 0.0))
        index.insert("near", (1.0, 0.0))
        index.insert("mid", (5.0, 0.0))
        result = index.nearest((0.0, 0.0), 2)
        assert [i for _, i in result] == ["near", "mid"]
        assert result[0][0] == pytest.approx(1.0)

    def test_k_larger_than_size(self):
        index = SpatialIndex()
        index.insert("a", (0.0, 0.0))
        assert len(index.nearest((1.0, 1.0), 10)) == 1

    @pytest.mark.parametrize("threshold", [1, 8, 1000])
    def test_matches_brute_force(self, threshold: int):
        rng = random.Random(threshold)
        index = SpatialIndex(rebuild_threshold=threshold)
        points: dict[str, tuple[float, float]] = {}
        for i in range(150):
            p = (rng.uniform(-1, 1), rng.uniform(-1, 1))
            points[str(i)] = p
            index.insert(str(i), p)
        # move some points and drop others after the tree was built
        for i in range(0, 150, 7):
            p = (rng.uniform(-1, 1), rng.uniform(-1, 1))
            points[str(i)] = p
            index.insert(str(i), p)
        for i in range(3, 150, 11):
            points.pop(str(i), None)
            index.remove(str(i))

        for _ in range(25):
            target = (rng.uniform(-1, 1), rng.uniform(-1, 1))
            got = [d for d, _ in index.nearest(target, 5)]
            assert got == pytest.approx(_brute_force(points, target, 5))

    def test_returned_ids_match_points(self):
        index = SpatialIndex(rebuild_threshold=2)
        for i in range(10):
            index.insert(str(i), (float(i), 0.0))
        for distance, item_id in index.nearest((3.2, 0.0), 4):
            assert distance == pytest.approx(abs(float(item_id) - 3.2))


class TestMaintenance:
    def test_pending_triggers_rebuild(self):
        index = SpatialIndex(rebuild_threshold=3)
        for i in range(3):
            index.insert(str(i), (float(i), 0.0))
        assert index.pending == 3
        assert index.rebuilds == 0
        index.insert("3", (3.0, 0.0))
        assert index.pending == 0
        assert index.rebuilds == 1

    def test_explicit_rebuild(self):
        index = SpatialIndex()
        index.insert("a", (0.0, 0.0))
        index.rebuild()
        assert index.pending == 0
        assert index.nearest((0.1, 0.0), 1)[0][1] == "a"

    def test_updated_point_not_found_at_old_location(self):
        index = SpatialIndex()
        index.insert("a", (0.0, 0.0))
        index.insert("b", (5.0, 5.0))
        index.rebuild()
        index.insert("a", (100.0, 100.0))
        assert index.nearest((0.0, 0.0), 1)[0][1] == "b"
        assert index.nearest((100.0, 100.0), 1) == [(0.0, "a")]
        assert len(index) == 2

    def test_remove(self):
        index = SpatialIndex()
        index.insert("a", (0.0, 0.0))
        index.rebuild()
        assert index.remove("a") is True
        assert index.remove("a") is False
        assert len(index) == 0
        assert index.nearest((0.0, 0.0), 1) == []
