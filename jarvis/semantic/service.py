"""
Service object owning both semantic stores and the conversation history.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping

from jarvis.config import settings
from jarvis.embeddings.base import Embedder
from jarvis.indexing.pipeline import IngestionResult, IngestionService
from jarvis.rag.router import ContextItem, QueryMode, RetrievalRouter
from jarvis.semantic.history import CONVERSATION_TYPE, ConversationHistoryCache
from jarvis.semantic.store import SemanticStore, call_with_lazy_init
from jarvis.vector_store import get_vector_store
from jarvis.vector_store.base import VectorStore

logger = logging.getLogger(__name__)

KNOWLEDGE_TYPE = "knowledge"
SYSTEM_TYPE = "system"


class MemoryService:
    """
    Host-owned handle on the memory store, the knowledge store and the
    conversation history. Construct one per application and pass it around.

    Writes propagate their errors to the caller. Reads degrade to empty
    results, ingestion reports failures in its result, and
    :meth:`clear_all_stores` returns ``False`` instead of raising.
    """

    def __init__(
        self,
        embedder: Embedder,
        memory_backend: VectorStore | None = None,
        knowledge_backend: VectorStore | None = None,
        chunk_size: int = settings.chunk_size_chars,
        memory_seed_text: str = settings.memory_seed_text,
        knowledge_seed_text: str = settings.knowledge_seed_text,
    ) -> None:
        self.embedder = embedder
        self.memory = SemanticStore(
            "memory",
            memory_backend or get_vector_store("memory"),
            embedder,
            seed_text=memory_seed_text,
            seed_metadata={"type": CONVERSATION_TYPE, "isUser": False},
        )
        self.knowledge = SemanticStore(
            "knowledge",
            knowledge_backend or get_vector_store("knowledge"),
            embedder,
            seed_text=knowledge_seed_text,
            seed_metadata={"type": SYSTEM_TYPE},
        )
        self.history = ConversationHistoryCache()
        self.memory.subscribe(on_insert=self.history.append_document, on_reset=self.history.clear)
        self.router = RetrievalRouter(self.memory, self.knowledge)
        self.ingestion = IngestionService(self, chunk_size=chunk_size)
        self._clear_lock = asyncio.Lock()

    async def initialize(self) -> None:
        await asyncio.gather(self.memory.initialize(), self.knowledge.initialize())

    # --- Writes ---
    async def add_to_memory(self, message: str, is_user: bool = True) -> str:
        metadata = {"type": CONVERSATION_TYPE, "isUser": is_user}
        try:
            return await call_with_lazy_init(self.memory, lambda: self.memory.add(message, metadata))
        except Exception:
            logger.exception("Error adding to memory")
            raise

    async def add_knowledge(self, text: str, metadata: Mapping[str, Any] | None = None) -> str:
        doc_metadata = {**(metadata or {}), "type": KNOWLEDGE_TYPE}
        try:
            doc_id = await call_with_lazy_init(self.knowledge, lambda: self.knowledge.add(text, doc_metadata))
        except Exception:
            logger.exception("Error adding knowledge")
            raise
        logger.info("Added knowledge document", extra={"id": doc_id, "chunk_index": doc_metadata.get("chunkIndex")})
        return doc_id

    async def ingest(self, content: Any, metadata: Mapping[str, Any] | None = None) -> IngestionResult:
        return await self.ingestion.ingest(content, metadata)

    async def ingest_confluence_page(self, content: Any, metadata: Mapping[str, Any] | None = None) -> IngestionResult:
        return await self.ingestion.ingest_confluence_page(content, metadata)

    # --- Reads ---
    async def query(self, text: str, limit: int, mode: QueryMode = QueryMode.BOTH) -> List[ContextItem]:
        try:
            return await self.router.query(text, limit, mode)
        except Exception:
            logger.exception("Error querying stores", extra={"mode": str(mode)})
            return []

    async def query_memory(self, text: str, limit: int = settings.default_query_limit) -> List[Dict[str, Any]]:
        """Merged results from both stores, knowledge first."""
        return [item.to_dict() for item in await self.query(text, limit, QueryMode.BOTH)]

    async def query_knowledge(self, text: str, limit: int = settings.default_query_limit) -> List[Dict[str, Any]]:
        return [item.to_dict() for item in await self.query(text, limit, QueryMode.KNOWLEDGE)]

    async def get_conversation_history(self, limit: int = settings.history_limit) -> List[Dict[str, Any]]:
        try:
            await call_with_lazy_init(self.memory, self.memory.ensure_ready)
            await self.memory.drain()
            if not len(self.history):
                await self.history.rebuild_from_store(self.memory)
            return [entry.to_dict() for entry in self.history.recent(limit)]
        except Exception:
            logger.exception("Error getting conversation history")
            return []

    # --- Reset ---
    async def clear_all_stores(self) -> bool:
        async with self._clear_lock:
            results = await asyncio.gather(self.memory.reset(), self.knowledge.reset(), return_exceptions=True)
            failures = [result for result in results if isinstance(result, BaseException)]
            if failures:
                logger.error("Error clearing stores", exc_info=failures[0])
                return False
        logger.info("All memory and knowledge stores have been cleared")
        return True


__all__ = ["MemoryService", "KNOWLEDGE_TYPE", "SYSTEM_TYPE"]
