# src/rag/embeddings/ollama_provider.py - v2
"""Ollama embedding provider.

Posts to a local Ollama server's /api/embed endpoint from a worker thread;
the request timeout is the provider's timeout_s.
"""

from __future__ import annotations

import asyncio
import json
import logging
import urllib.request
from typing import Any

from blueprints_rag.rag.embeddings.base_provider import EmbeddingError, EmbeddingProvider

logger = logging.getLogger(__name__)


class OllamaProvider(EmbeddingProvider):
    """Blueprint embeddings from a local Ollama model."""

    provider_name = "ollama"
    default_model = "nomic-embed-text"
    default_dimensions = 768

    def __init__(self, base_url: str = "http://localhost:11434", **options: Any) -> None:
        super().__init__(**options)
        self._base_url = base_url.rstrip("/")

    async def _embed_one(self, text: str, model: str) -> list[float]:
        return await asyncio.to_thread(self._request, text, model)

    def _request(self, text: str, model: str) -> list[float]:
        url = f"{self._base_url}/api/embed"
        payload = json.dumps({"model": model, "input": text}).encode("utf-8")
        req = urllib.request.Request(
            url, data=payload, headers={"Content-Type": "application/json"}
        )
        with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
            data = json.loads(resp.read().decode("utf-8"))
        vectors = data.get("embeddings") or []
        if vectors:
            return vectors[0]
        raise EmbeddingError(f"Ollama returned no embeddings for model {model}")
