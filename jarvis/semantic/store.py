"""
Embedding-aware store: embeds text on add, ranks documents on query and
keeps reads consistent with writes issued before them.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Tuple, TypeVar

from jarvis.embeddings.base import Embedder
from jarvis.errors import StaleWriteError, StoreUninitializedRecoverable
from jarvis.semantic.tracker import PendingOperationTracker
from jarvis.vector_store.base import Document, VectorStore

T = TypeVar("T")

logger = logging.getLogger(__name__)

InsertListener = Callable[[Document], None]
ResetListener = Callable[[], None]


class StoreState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RESETTING = "resetting"


class SemanticStore:
    """
    One logical store (memory or knowledge).

    Lifecycle: ``UNINITIALIZED -> READY -> RESETTING -> READY``. A store is
    seeded with exactly one document whenever it becomes ready. Entry points
    wait while a reset is in progress and raise
    :class:`StoreUninitializedRecoverable` when the store was never
    initialised, which the owning service answers with a lazy ``initialize``.
    """

    def __init__(
        self,
        name: str,
        backend: VectorStore,
        embedder: Embedder,
        seed_text: str,
        seed_metadata: Mapping[str, Any],
    ) -> None:
        self.name = name
        self.backend = backend
        self.embedder = embedder
        self.seed_text = seed_text
        self.seed_metadata = dict(seed_metadata)
        self.tracker = PendingOperationTracker(name)
        self.state = StoreState.UNINITIALIZED
        self._ready = asyncio.Event()
        self._lifecycle_lock = asyncio.Lock()
        self._last_timestamp: datetime | None = None
        self._insert_listeners: List[InsertListener] = []
        self._reset_listeners: List[ResetListener] = []

    @property
    def generation(self) -> int:
        return self.tracker.generation

    def subscribe(self, on_insert: InsertListener | None = None, on_reset: ResetListener | None = None) -> None:
        """Listeners run synchronously, in insertion order, right after the backend write."""
        if on_insert is not None:
            self._insert_listeners.append(on_insert)
        if on_reset is not None:
            self._reset_listeners.append(on_reset)

    # --- Lifecycle ---
    async def initialize(self) -> bool:
        """Seed the store if needed. Returns True when this call did the seeding."""
        if self.state is StoreState.READY:
            return False
        async with self._lifecycle_lock:
            if self.state is StoreState.READY:
                return False
            self.backend.clear()
            self._notify_reset()
            await self._seed(self.seed_text, self.seed_metadata)
            logger.info("Store initialised", extra={"store": self.name, "generation": self.generation})
            return True

    async def reset(self, seed_text: str | None = None, seed_metadata: Mapping[str, Any] | None = None) -> None:
        async with self._lifecycle_lock:
            self.state = StoreState.RESETTING
            self._ready.clear()
            try:
                await self.tracker.drain()
                self.tracker.advance()
                self.backend.clear()
                self._last_timestamp = None
                self._notify_reset()
                await self._seed(
                    seed_text if seed_text is not None else self.seed_text,
                    seed_metadata if seed_metadata is not None else self.seed_metadata,
                )
            except BaseException:
                self.state = StoreState.UNINITIALIZED
                self._ready.set()
                raise
        logger.info("Store reset", extra={"store": self.name, "generation": self.generation})

    async def _seed(self, text: str, metadata: Mapping[str, Any]) -> Document:
        embedding = await self.embedder.embed_text(text)
        document = self._insert(text, metadata, embedding)
        self.state = StoreState.READY
        self._ready.set()
        return document

    async def ensure_ready(self) -> None:
        if self.state is StoreState.READY:
            return
        if self.state is StoreState.RESETTING:
            await self._ready.wait()
        if self.state is not StoreState.READY:
            raise StoreUninitializedRecoverable(f"Store '{self.name}' is not initialised")

    # --- Writes ---
    async def add(self, text: str, metadata: Mapping[str, Any]) -> str:
        document = await self.add_document(text, metadata)
        return document.id

    async def add_document(self, text: str, metadata: Mapping[str, Any]) -> Document:
        """
        Embed and insert one document. The operation is tracked so readers
        can drain it, and keeps running if the caller stops waiting.
        """
        await self.ensure_ready()
        operation = self.tracker.track(self._embed_and_insert(text, dict(metadata), self.generation))
        return await asyncio.shield(operation)

    async def _embed_and_insert(self, text: str, metadata: Dict[str, Any], generation: int) -> Document:
        """
        Embed, then insert only if the store is still on ``generation``.

        ``reset`` drains before it advances, so this guard only fires when the
        tracker generation is advanced some other way while the embed is in
        flight. The write is then dropped with :class:`StaleWriteError`.
        """
        embedding = await self.embedder.embed_text(text)
        if generation != self.generation:
            raise StaleWriteError(f"Store '{self.name}' was reset while the document was being embedded")
        return self._insert(text, metadata, embedding)

    def _insert(self, text: str, metadata: Mapping[str, Any], embedding: List[float]) -> Document:
        doc_id = uuid.uuid4().hex
        document = Document(
            id=doc_id,
            text=text,
            metadata={**metadata, "timestamp": self._next_timestamp(), "id": doc_id},
            embedding=list(embedding),
        )
        self.backend.upsert_documents([document])
        for listener in self._insert_listeners:
            listener(document)
        logger.debug("Document added", extra={"store": self.name, "id": doc_id, "type": metadata.get("type")})
        return document

    def _next_timestamp(self) -> str:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now.isoformat()

    def _notify_reset(self) -> None:
        for listener in self._reset_listeners:
            listener()

    # --- Reads ---
    async def similarity_search(self, query: str, k: int) -> List[Document]:
        return [document for document, _ in await self.similarity_search_with_scores(query, k)]

    async def similarity_search_with_scores(self, query: str, k: int) -> List[Tuple[Document, float]]:
        await self.ensure_ready()
        await self.tracker.drain()
        if k <= 0:
            return []
        if not query:
            return [(document, 0.0) for document in self.backend.list_documents()[:k]]

        embedding = await self.embedder.embed_text(query)
        return self.backend.search(embedding, top_k=k)

    async def all_documents(self) -> List[Document]:
        await self.ensure_ready()
        await self.tracker.drain()
        return self.backend.list_documents()

    async def drain(self) -> None:
        await self.tracker.drain()

    def count(self) -> int:
        return self.backend.count()


async def call_with_lazy_init(store: SemanticStore, operation: Callable[[], Awaitable[T]]) -> T:
    """
    Run ``operation`` against ``store``, initialising the store first if it
    reports that it was never initialised.
    """
    try:
        return await operation()
    except StoreUninitializedRecoverable:
        logger.info("Lazily initialising store", extra={"store": store.name})
        await store.initialize()
        return await operation()


__all__ = ["SemanticStore", "StoreState", "call_with_lazy_init"]
