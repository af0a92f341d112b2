"""
Vector store abstractions and factories.
"""

from jarvis.config import settings
from jarvis.vector_store.base import Document, VectorStore
from jarvis.vector_store.chroma_store import ChromaVectorStore
from jarvis.vector_store.memory_store import InMemoryVectorStore

DEFAULT_VECTOR_STORE_BACKEND = settings.vector_store_backend


def get_vector_store(name: str, backend: str | None = None) -> VectorStore:
    """
    Factory to obtain a configured VectorStore instance for one logical store.
    Supports the in-process numpy backend and an ephemeral Chroma backend.
    """
    backend = (backend or DEFAULT_VECTOR_STORE_BACKEND).lower()
    if backend == "memory":
        return InMemoryVectorStore(name=name)
    if backend == "chroma":
        return ChromaVectorStore(name=name)
    raise ValueError(f"Unsupported vector store backend: {backend}")


__all__ = [
    "DEFAULT_VECTOR_STORE_BACKEND",
    "get_vector_store",
    "Document",
    "VectorStore",
    "ChromaVectorStore",
    "InMemoryVectorStore",
]
