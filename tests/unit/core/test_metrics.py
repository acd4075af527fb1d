# tests/unit/core/test_metrics.py - v1
"""Tests for core/metrics.py - per-operation counters."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest

from blueprints_rag.core.metrics import MetricsRecorder


class TestMetricsRecorder:
    def test_record_success_and_error(self):
        metrics = MetricsRecorder()
        metrics.record("search", 0.2)
        metrics.record("search", 0.4, error="timeout")
        stats = metrics.get("search")
        assert stats.count == 2
        assert stats.success_count == 1
        assert stats.avg_duration_s == pytest.approx(0.3)
        assert stats.success_rate == 0.5
        assert stats.errors[0].message == "timeout"

    def test_unknown_operation(self):
        assert MetricsRecorder().get("nothing") is None

    def test_errors_capped(self):
        metrics = MetricsRecorder(keep_errors=3)
        for i in range(5):
            metrics.record("embed", 0.0, error=f"e{i}")
        assert [e.message for e in metrics.get("embed").errors] == ["e2", "e3", "e4"]

    def test_get_returns_copy(self):
        metrics = MetricsRecorder()
        metrics.record("op", 1.0)
        metrics.get("op").count = 99
        assert metrics.get("op").count == 1

    def test_snapshot(self):
        metrics = MetricsRecorder()
        metrics.record("b", 1.0)
        metrics.record("a", 1.0)
        snapshot = metrics.snapshot()
        assert list(snapshot) == ["a", "b"]
        assert snapshot["a"]["success_rate"] == 1.0
        assert len(metrics) == 2

    def test_concurrent_records(self):
        metrics = MetricsRecorder()
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: metrics.record("op", 0.001), range(400)))
        assert metrics.get("op").count == 400
