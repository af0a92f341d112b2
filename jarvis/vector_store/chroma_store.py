"""
Chroma-based VectorStore implementation.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Tuple

import chromadb

from jarvis.vector_store.base import Document, VectorStore

CHROMA_COLLECTION_PREFIX = "jarvis"
SEQUENCE_KEY = "_seq"

logger = logging.getLogger(__name__)


def _to_chroma_metadata(metadata: Dict[str, Any], seq: int) -> Dict[str, Any]:
    # Chroma only accepts scalar, non-null metadata values
    cleaned: Dict[str, Any] = {}
    for key, value in metadata.items():
        if value is None:
            continue
        if isinstance(value, (str, int, float, bool)):
            cleaned[key] = value
        else:
            cleaned[key] = str(value)
    cleaned[SEQUENCE_KEY] = seq
    return cleaned


def _from_chroma_metadata(metadata: Dict[str, Any] | None) -> Tuple[Dict[str, Any], int]:
    metadata = dict(metadata or {})
    seq = int(metadata.pop(SEQUENCE_KEY, 0))
    return metadata, seq


class ChromaVectorStore(VectorStore):
    def __init__(
        self,
        name: str = "default",
        client: Any | None = None,
        collection_name: str | None = None,
    ) -> None:
        self.name = name
        self.collection_name = collection_name or f"{CHROMA_COLLECTION_PREFIX}_{name}_{uuid.uuid4().hex[:8]}"
        self.client = client or chromadb.EphemeralClient()
        self.collection = self._create_collection()
        self._next_seq = 0
        logger.info("ChromaVectorStore initialised", extra={"collection": self.collection_name})

    def _create_collection(self):
        return self.client.get_or_create_collection(self.collection_name, metadata={"hnsw:space": "cosine"})

    def clear(self) -> None:
        self.client.delete_collection(self.collection_name)
        self.collection = self._create_collection()
        self._next_seq = 0
        logger.info("Chroma collection cleared and recreated", extra={"collection": self.collection_name})

    def upsert_documents(self, documents: List[Document]) -> None:
        if not documents:
            return

        ids = [doc.id for doc in documents]
        embeddings = [doc.embedding for doc in documents]
        metadatas = []
        for doc in documents:
            metadatas.append(_to_chroma_metadata(doc.metadata, self._next_seq))
            self._next_seq += 1
        texts = [doc.text for doc in documents]

        self.collection.add(ids=ids, embeddings=embeddings, metadatas=metadatas, documents=texts)
        logger.debug("Upserted documents into Chroma", extra={"count": len(documents), "collection": self.collection_name})

    def search(self, query_embedding: List[float], top_k: int) -> List[Tuple[Document, float]]:
        """
        Cosine-ranked search. HNSW is approximate: ties are broken by insertion
        order only among the candidates the index returns, so on large
        collections an earlier equal-score document may be missed.
        """
        total = self.collection.count()
        if top_k <= 0 or total == 0:
            return []

        result = self.collection.query(
            query_embeddings=[query_embedding],
            n_results=min(top_k, total),
            include=["documents", "metadatas", "distances"],
        )

        ids = result.get("ids", [[]])[0] or []
        texts = result.get("documents", [[]])[0] or []
        metadatas = result.get("metadatas", [[]])[0] or []
        distances = result.get("distances", [[]])[0] or []

        ranked: List[Tuple[float, int, Document]] = []
        for doc_id, text, raw_metadata, distance in zip(ids, texts, metadatas, distances):
            metadata, seq = _from_chroma_metadata(raw_metadata)
            score = 1.0 - float(distance)
            ranked.append((score, seq, Document(id=doc_id, text=text, metadata=metadata)))

        ranked.sort(key=lambda item: (-item[0], item[1]))
        return [(doc, score) for score, _, doc in ranked]

    def list_documents(self) -> List[Document]:
        result = self.collection.get(include=["documents", "metadatas"])
        ids = result.get("ids", []) or []
        texts = result.get("documents", []) or []
        metadatas = result.get("metadatas", []) or []

        ordered: List[Tuple[int, Document]] = []
        for doc_id, text, raw_metadata in zip(ids, texts, metadatas):
            metadata, seq = _from_chroma_metadata(raw_metadata)
            ordered.append((seq, Document(id=doc_id, text=text, metadata=metadata)))
        ordered.sort(key=lambda item: item[0])
        return [doc for _, doc in ordered]

    def count(self) -> int:
        return self.collection.count()


__all__ = ["ChromaVectorStore", "CHROMA_COLLECTION_PREFIX"]
