# src/rag/embeddings/sentence_tf_provider.py - v2
"""Sentence Transformers embedding provider (local inference).

Uses the sentence-transformers library for local embedding generation.
Models: all-MiniLM-L6-v2, multilingual-e5-large, etc. The model is loaded
on first use, in a worker thread, like every encode call.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from blueprints_rag.rag.embeddings.base_provider import EmbeddingError, EmbeddingProvider

logger = logging.getLogger(__name__)


class SentenceTransformerProvider(EmbeddingProvider):
    """Local embeddings via sentence-transformers."""

    provider_name = "sentence_transformers"
    default_model = "all-MiniLM-L6-v2"
    default_dimensions = 384

    def __init__(self, **options: Any) -> None:
        super().__init__(**options)
        self.__models: dict[str, Any] = {}

    def _load(self, model: str) -> Any:
        if model not in self.__models:
            try:
                from sentence_transformers import SentenceTransformer
            except ImportError as e:
                raise EmbeddingError(
                    "sentence-transformers package required: "
                    "pip install blueprints-rag[embeddings]"
                ) from e
            loaded = SentenceTransformer(model)
            if model == self.model_name:
                # Update dimensions from loaded model
                self._dimensions = loaded.get_sentence_embedding_dimension()
            self.__models[model] = loaded
            logger.info("Loaded sentence-transformers model %s", model)
        return self.__models[model]

    def _encode(self, texts: list[str], model: str) -> list[list[float]]:
        embeddings = self._load(model).encode(texts, show_progress_bar=False)
        return [emb.tolist() for emb in embeddings]

    async def _embed_one(self, text: str, model: str) -> list[float]:
        return (await self._embed_many([text], model))[0]

    async def _embed_many(self, texts: list[str], model: str) -> list[list[float]]:
        return await asyncio.to_thread(self._encode, texts, model)
