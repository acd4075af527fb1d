# src/logging/context.py - v3
"""Blueprint and processor context carried into every log record.

Ingestion and query handling run as concurrent asyncio tasks, and processors
run in worker threads via ``asyncio.to_thread``; both copy the current
``contextvars`` context, so values set here follow the work without leaking
between blueprints.

Context is set only through scopes: ``blueprint_scope`` for one ingestion or
query, ``processor_scope`` for one processor run. Each restores the context
active on entry, so nested or interleaved work keeps its own markers.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any

_blueprint_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "blueprint_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("run_id", default=None)
_processor: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "processor", default=None
)
_step: contextvars.ContextVar[str | None] = contextvars.ContextVar("step", default=None)


@dataclass(frozen=True)
class LogContext:
    blueprint_id: str | None = None
    run_id: str | None = None
    processor: str | None = None
    step: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Set fields only, for the JSON ``context`` object."""
        return {k: v for k, v in asdict(self).items() if v is not None}


def get_context() -> LogContext:
    return LogContext(
        blueprint_id=_blueprint_id.get(),
        run_id=_run_id.get(),
        processor=_processor.get(),
        step=_step.get(),
    )


def _new_run_id() -> str:
    return uuid.uuid4().hex[:8]


@contextmanager
def blueprint_scope(blueprint_id: str, run_id: str | None = None) -> Iterator[LogContext]:
    """Tag logs with ``blueprint_id`` for the duration of the block.

    A fresh 8-character ``run_id`` is generated when none is given. Processor
    markers from an enclosing block are hidden inside the scope.
    """
    tokens = [
        (_blueprint_id, _blueprint_id.set(blueprint_id)),
        (_run_id, _run_id.set(run_id or _new_run_id())),
        (_processor, _processor.set(None)),
        (_step, _step.set(None)),
    ]
    try:
        yield get_context()
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


@contextmanager
def processor_scope(processor: str, step: str | None = None) -> Iterator[LogContext]:
    """Tag logs with the running processor, keeping the blueprint markers."""
    processor_token = _processor.set(processor)
    step_token = _step.set(step)
    try:
        yield get_context()
    finally:
        _step.reset(step_token)
        _processor.reset(processor_token)

