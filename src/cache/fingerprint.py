# src/cache/fingerprint.py - v3
"""Cache key derivation.

Three key families are used:
- full-text hash for pipeline records (identical input -> identical key);
- bounded-prefix hash for processor fragments (prefix plus total length,
  so long texts sharing a prefix still differ by size);
- configuration hash scoping a namespace to one pipeline configuration.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any


def text_hash(text: str) -> str:
    """SHA-256 of the full text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def prefix_hash(text: str, prefix_chars: int = 1000) -> str:
    """MD5 of the first ``prefix_chars`` characters and the text length."""
    material = f"{len(text)}:{text[:prefix_chars]}"
    return hashlib.md5(material.encode("utf-8")).hexdigest()  # noqa: S324


def config_hash(config: Mapping[str, Any]) -> str:
    """Stable short hash of a configuration mapping (key order ignored)."""
    canonical = json.dumps(config, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def embedding_key(text: str, model: str, normalize: bool) -> str:
    """Key for a cached vector: (truncated text hash, model, normalize flag)."""
    return f"{model}:{int(normalize)}:{text_hash(text)}"
