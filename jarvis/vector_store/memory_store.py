"""
In-process VectorStore ranked by cosine similarity with numpy.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import List, Tuple

import numpy as np

from jarvis.vector_store.base import Document, VectorStore

logger = logging.getLogger(__name__)


def _normalise(vectors: np.ndarray) -> np.ndarray:
    norms = np.linalg.norm(vectors, axis=1, keepdims=True)
    norms[norms == 0] = 1.0
    return vectors / norms


def _detached(document: Document) -> Document:
    # callers get their own metadata dict, never the stored one
    return dataclasses.replace(document, metadata=dict(document.metadata))


class InMemoryVectorStore(VectorStore):
    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._documents: List[Document] = []
        self._matrix: np.ndarray | None = None

    def clear(self) -> None:
        self._documents = []
        self._matrix = None
        logger.info("In-memory store cleared", extra={"store": self.name})

    def upsert_documents(self, documents: List[Document]) -> None:
        if not documents:
            return

        known = {doc.id for doc in self._documents}
        duplicates = [doc.id for doc in documents if doc.id in known]
        if duplicates:
            raise ValueError(f"Documents already stored: {duplicates}")

        vectors = _normalise(np.asarray([doc.embedding for doc in documents], dtype="float32"))
        if self._matrix is not None and vectors.shape[1] != self._matrix.shape[1]:
            raise ValueError(
                f"Embedding dimension {vectors.shape[1]} does not match store dimension {self._matrix.shape[1]}"
            )

        self._matrix = vectors if self._matrix is None else np.vstack([self._matrix, vectors])
        self._documents.extend(_detached(doc) for doc in documents)
        logger.debug("Upserted documents", extra={"count": len(documents), "store": self.name})

    def search(self, query_embedding: List[float], top_k: int) -> List[Tuple[Document, float]]:
        if top_k <= 0 or self._matrix is None:
            return []

        query = _normalise(np.asarray([query_embedding], dtype="float32"))[0]
        scores = self._matrix @ query
        # stable sort keeps insertion order among equal scores
        order = np.argsort(-scores, kind="stable")[:top_k]
        return [(_detached(self._documents[i]), float(scores[i])) for i in order]

    def list_documents(self) -> List[Document]:
        return [_detached(doc) for doc in self._documents]

    def count(self) -> int:
        return len(self._documents)


__all__ = ["InMemoryVectorStore"]
