# tests/unit/logging/test_context.py - v2
"""Tests for logging/context.py - scoped context variables for structured logs."""

from __future__ import annotations

import asyncio

import pytest

from blueprints_rag.logging.context import (
    LogContext,
    blueprint_scope,
    get_context,
    processor_scope,
)


class TestContext:
    def test_empty_by_default(self):
        assert get_context().as_dict() == {}

    def test_as_dict_skips_unset(self):
        with blueprint_scope("bp-1", run_id="run1"), processor_scope("entity"):
            assert get_context().as_dict() == {
                "blueprint_id": "bp-1",
                "run_id": "run1",
                "processor": "entity",
            }

    @pytest.mark.asyncio
    async def test_isolated_between_tasks(self):
        async def ingest(blueprint_id: str) -> str | None:
            with blueprint_scope(blueprint_id):
                await asyncio.sleep(0)
                return get_context().blueprint_id

        results = await asyncio.gather(ingest("a"), ingest("b"))
        assert results == ["a", "b"]
        assert get_context().blueprint_id is None


class TestScopes:
    def test_blueprint_scope_generates_run_id(self):
        with blueprint_scope("bp-1") as ctx:
            assert ctx.blueprint_id == "bp-1"
            assert ctx.run_id is not None and len(ctx.run_id) == 8
        assert get_context() == LogContext()

    def test_nested_scope_restores_outer(self):
        with blueprint_scope("outer", run_id="r1"):
            with processor_scope("entity", step="process"):
                with blueprint_scope("inner", run_id="r2") as inner:
                    assert inner == LogContext("inner", "r2")
                assert get_context() == LogContext("outer", "r1", "entity", "process")
            assert get_context() == LogContext("outer", "r1")

    def test_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with blueprint_scope("bp-1", run_id="r"):
                raise RuntimeError("boom")
        assert get_context().blueprint_id is None

    @pytest.mark.asyncio
    async def test_processor_scope_in_worker_thread(self):
        def run() -> LogContext:
            with processor_scope("semantic"):
                return get_context()

        with blueprint_scope("bp-1", run_id="r"):
            seen = await asyncio.to_thread(run)
            assert get_context().processor is None
        assert seen == LogContext("bp-1", "r", "semantic")
