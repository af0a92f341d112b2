"""
Vector store interface and shared types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Tuple


@dataclass(frozen=True)
class Document:
    id: str
    text: str
    metadata: Dict[str, Any]
    embedding: List[float] = field(default_factory=list, repr=False)


class VectorStore(Protocol):
    def clear(self) -> None:
        ...

    def upsert_documents(self, documents: List[Document]) -> None:
        ...

    def search(self, query_embedding: List[float], top_k: int) -> List[Tuple[Document, float]]:
        ...

    def list_documents(self) -> List[Document]:
        ...

    def count(self) -> int:
        ...


__all__ = ["Document", "VectorStore"]
