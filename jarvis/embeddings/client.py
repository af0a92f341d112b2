"""
OpenAI embeddings client.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from openai import AsyncOpenAI, OpenAIError

from jarvis.config import settings
from jarvis.errors import EmbeddingError

DEFAULT_EMBEDDING_MODEL = settings.embedding_model_name
DEFAULT_EMBED_BATCH_SIZE = settings.embed_batch_size

logger = logging.getLogger(__name__)


class EmbeddingsClient:
    def __init__(
        self,
        model: str = DEFAULT_EMBEDDING_MODEL,
        batch_size: int = DEFAULT_EMBED_BATCH_SIZE,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.batch_size = batch_size
        api_key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
        self.client = client or AsyncOpenAI(api_key=api_key)

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []
        if any(not isinstance(text, str) or not text for text in texts):
            raise EmbeddingError("Cannot embed empty or non-string input")

        embeddings: List[List[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = list(texts[i : i + self.batch_size])
            try:
                response = await self.client.embeddings.create(model=self.model, input=batch)
            except OpenAIError as exc:
                logger.warning("Embedding request failed", extra={"model": self.model, "batch": len(batch)})
                raise EmbeddingError(f"Embedding request failed: {exc}") from exc
            embeddings.extend([item.embedding for item in response.data])

        if len(embeddings) != len(texts):
            raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(embeddings)}")
        return embeddings

    async def embed_text(self, text: str) -> List[float]:
        vectors = await self.embed_texts([text])
        return vectors[0]


__all__ = ["EmbeddingsClient", "DEFAULT_EMBEDDING_MODEL", "DEFAULT_EMBED_BATCH_SIZE"]
