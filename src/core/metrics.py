# src/core/metrics.py - v1
"""Per-operation counters with rolling average latency.

Shared by processors, the pipeline and the RAG service. Each recorder owns
its own lock so concurrent ingestions can record without contention on a
global structure.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field

MAX_RECENT_ERRORS = 10


class OperationError(BaseModel):
    message: str
    timestamp: datetime


class OperationStats(BaseModel):
    """Aggregated counters for one named operation."""

    count: int = 0
    success_count: int = 0
    total_duration_s: float = 0.0
    avg_duration_s: float = 0.0
    errors: list[OperationError] = Field(default_factory=list)

    @property
    def success_rate(self) -> float:
        return self.success_count / self.count if self.count else 0.0


class MetricsRecorder:
    """Thread-safe map of operation name -> OperationStats."""

    def __init__(self, keep_errors: int = MAX_RECENT_ERRORS) -> None:
        self._stats: dict[str, OperationStats] = {}
        self._lock = threading.Lock()
        self._keep_errors = keep_errors

    def record(
        self, operation: str, duration_s: float, error: str | None = None
    ) -> None:
        """Record one execution of ``operation``."""
        with self._lock:
            stats = self._stats.setdefault(operation, OperationStats())
            stats.count += 1
            stats.total_duration_s += duration_s
            if error is None:
                stats.success_count += 1
            else:
                stats.errors.append(
                    OperationError(message=error, timestamp=datetime.now(timezone.utc))
                )
                stats.errors = stats.errors[-self._keep_errors :]
            stats.avg_duration_s = stats.total_duration_s / stats.count

    def get(self, operation: str) -> OperationStats | None:
        with self._lock:
            stats = self._stats.get(operation)
            return stats.model_copy(deep=True) if stats else None

    def snapshot(self) -> dict[str, dict[str, Any]]:
        """Return a JSON-ready copy of every operation's stats."""
        with self._lock:
            return {
                name: {
                    **stats.model_dump(mode="json"),
                    "success_rate": stats.success_rate,
                }
                for name, stats in sorted(self._stats.items())
            }

    def __len__(self) -> int:
        return len(self._stats)
