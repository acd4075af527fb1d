# src/rag/embeddings/openai_provider.py - v2
"""OpenAI embedding provider (async SDK client, one request per batch)."""

from __future__ import annotations

import logging
from typing import Any

from blueprints_rag.rag.embeddings.base_provider import EmbeddingError, EmbeddingProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(EmbeddingProvider):
    """Cloud embeddings through openai.AsyncOpenAI."""

    provider_name = "openai"
    default_model = "text-embedding-3-small"
    default_dimensions = 1536

    def __init__(self, api_key: str | None = None, **options: Any) -> None:
        super().__init__(**options)
        self._api_key = api_key
        self.__client = None

    @property
    def _client(self):
        if self.__client is None:
            try:
                import openai
            except ImportError as e:
                raise EmbeddingError(
                    "openai package required: pip install blueprints-rag[embeddings]"
                ) from e
            self.__client = openai.AsyncOpenAI(api_key=self._api_key or None)
        return self.__client

    async def _embed_one(self, text: str, model: str) -> list[float]:
        return (await self._embed_many([text], model))[0]

    async def _embed_many(self, texts: list[str], model: str) -> list[list[float]]:
        response = await self._client.embeddings.create(input=texts, model=model)
        return [item.embedding for item in response.data]
