"""
Chronological log of conversation turns mirrored from the memory store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Iterator, List

from jarvis.vector_store.base import Document

if TYPE_CHECKING:
    from jarvis.semantic.store import SemanticStore

CONVERSATION_TYPE = "conversation"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversationHistoryEntry:
    id: str
    text: str
    is_user: bool
    timestamp: str

    @classmethod
    def from_document(cls, document: Document) -> "ConversationHistoryEntry":
        meta = document.metadata
        return cls(
            id=str(meta.get("id") or document.id),
            text=document.text,
            is_user=bool(meta.get("isUser", False)),
            timestamp=str(meta.get("timestamp", "")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "text": self.text, "isUser": self.is_user, "timestamp": self.timestamp}


def is_conversation(document: Document) -> bool:
    return document.metadata.get("type") == CONVERSATION_TYPE


def _timestamp_key(entry: ConversationHistoryEntry) -> datetime:
    return datetime.fromisoformat(entry.timestamp)


class ConversationHistoryCache:
    """Append-only; entries arrive in the same order as memory-store inserts."""

    def __init__(self) -> None:
        self._entries: List[ConversationHistoryEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConversationHistoryEntry]:
        return iter(list(self._entries))

    def append(self, entry: ConversationHistoryEntry) -> None:
        self._entries.append(entry)

    def append_document(self, document: Document) -> None:
        if is_conversation(document):
            self.append(ConversationHistoryEntry.from_document(document))

    def recent(self, limit: int) -> List[ConversationHistoryEntry]:
        if limit <= 0:
            return []
        return self._entries[-limit:]

    def clear(self) -> None:
        self._entries = []

    async def rebuild_from_store(self, store: "SemanticStore") -> bool:
        """
        Rebuild the cache from the store's conversation documents when the
        cache is empty. Returns True when the cache was replaced.
        """
        if self._entries:
            return False

        documents = await store.all_documents()
        if not documents:
            return False

        entries = [ConversationHistoryEntry.from_document(doc) for doc in documents if is_conversation(doc)]
        # sorted() is stable, so equal timestamps keep insertion order
        self._entries = sorted(entries, key=_timestamp_key)
        logger.info("Conversation history rebuilt from store", extra={"entries": len(self._entries)})
        return True


__all__ = ["ConversationHistoryCache", "ConversationHistoryEntry", "CONVERSATION_TYPE", "is_conversation"]
