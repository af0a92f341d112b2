"""
Embedder interface shared by the stores and the clients.
"""

from __future__ import annotations

from typing import List, Protocol, Sequence


class Embedder(Protocol):
    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        ...

    async def embed_text(self, text: str) -> List[float]:
        ...


__all__ = ["Embedder"]
