# src/core/similarity.py - v3
"""Vector similarity helpers over full-length embeddings (numpy)."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

logger = logging.getLogger(__name__)

_EPS = 1e-10


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity between two vectors.

    Returns 0.0 when either vector is empty or all-zero, or when the
    lengths differ (vectors from different providers are not comparable).
    """
    if len(a) == 0 or len(b) == 0 or len(a) != len(b):
        return 0.0
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if norm < _EPS:
        return 0.0
    return float(np.dot(va, vb) / norm)


def normalize_vector(vector: Sequence[float]) -> list[float]:
    """Scale to unit length; zero vectors are returned unchanged."""
    arr = np.asarray(vector, dtype=np.float64)
    magnitude = float(np.linalg.norm(arr))
    if magnitude < _EPS:
        return [float(x) for x in arr]
    return (arr / magnitude).tolist()

