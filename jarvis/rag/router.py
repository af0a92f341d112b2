"""
Retrieval across the memory and knowledge stores.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Sequence

from jarvis.semantic.store import SemanticStore, call_with_lazy_init

logger = logging.getLogger(__name__)

MEMORY_ORIGIN = "memory"
KNOWLEDGE_ORIGIN = "knowledge"
CONTEXT_SEPARATOR = "\n\n"


class QueryMode(str, Enum):
    BOTH = "both"
    KNOWLEDGE = "knowledge"
    MEMORY = "memory"


@dataclass(frozen=True)
class ContextItem:
    content: str
    metadata: Dict[str, Any]
    origin: str
    score: float

    def to_dict(self) -> Dict[str, Any]:
        return {"content": self.content, "metadata": dict(self.metadata), "origin": self.origin}


def build_context_text(items: Sequence[ContextItem]) -> str:
    """Join retrieved contents in result order (knowledge first for merged results)."""
    return CONTEXT_SEPARATOR.join(item.content for item in items)


class RetrievalRouter:
    def __init__(self, memory: SemanticStore, knowledge: SemanticStore) -> None:
        self.memory = memory
        self.knowledge = knowledge

    async def query(self, query: str, limit: int, mode: QueryMode = QueryMode.BOTH) -> List[ContextItem]:
        mode = QueryMode(mode)
        if mode is QueryMode.KNOWLEDGE:
            return await self.query_knowledge_only(query, limit)
        if mode is QueryMode.MEMORY:
            return await self.query_memory_only(query, limit)
        return await self.query_both(query, limit)

    async def query_both(self, query: str, limit: int) -> List[ContextItem]:
        memory_limit = max(limit, 0) // 2
        knowledge_limit = max(limit, 0) - memory_limit

        results = await asyncio.gather(
            self._search(self.memory, MEMORY_ORIGIN, query, memory_limit),
            self._search(self.knowledge, KNOWLEDGE_ORIGIN, query, knowledge_limit),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        memory_items, knowledge_items = results
        logger.info(
            "Queried both stores",
            extra={"memory_results": len(memory_items), "knowledge_results": len(knowledge_items), "limit": limit},
        )
        return knowledge_items + memory_items

    async def query_knowledge_only(self, query: str, limit: int) -> List[ContextItem]:
        items = await self._search(self.knowledge, KNOWLEDGE_ORIGIN, query, limit)
        logger.info("Queried knowledge store", extra={"results": len(items), "limit": limit})
        return items

    async def query_memory_only(self, query: str, limit: int) -> List[ContextItem]:
        return [item for item in await self.query_both(query, limit) if item.origin == MEMORY_ORIGIN]

    @staticmethod
    async def _search(store: SemanticStore, origin: str, query: str, k: int) -> List[ContextItem]:
        await call_with_lazy_init(store, store.ensure_ready)
        if k <= 0:
            return []
        results = await call_with_lazy_init(store, lambda: store.similarity_search_with_scores(query, k))
        return [
            ContextItem(
                content=document.text,
                metadata={**document.metadata, "origin": origin},
                origin=origin,
                score=score,
            )
            for document, score in results
        ]


__all__ = [
    "RetrievalRouter",
    "QueryMode",
    "ContextItem",
    "build_context_text",
    "MEMORY_ORIGIN",
    "KNOWLEDGE_ORIGIN",
]
