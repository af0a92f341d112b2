"""
Ingestion pipeline: validate, chunk and index documents into the knowledge store.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Protocol, Sequence

from tqdm import tqdm

from jarvis.config import settings
from jarvis.errors import InvalidInputError, PartialIngestionError
from jarvis.indexing.chunker import chunk_text

logger = logging.getLogger(__name__)

DEFAULT_SOURCE = "manual"
CONFLUENCE_SOURCE = "confluence"
FILE_SOURCE = "file"
DEFAULT_FILE_PATTERNS = ("*.txt", "*.md")


class KnowledgeWriter(Protocol):
    async def add_knowledge(self, text: str, metadata: Mapping[str, Any]) -> str:
        ...


@dataclass
class IngestionResult:
    success: bool
    message: str
    ids: List[str] = field(default_factory=list)
    total_chunks: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message, "ids": list(self.ids)}


class IngestionService:
    """Chunks documents and writes every chunk to the knowledge store concurrently."""

    def __init__(
        self,
        writer: KnowledgeWriter,
        chunk_size: int = settings.chunk_size_chars,
        logger_: logging.Logger | None = None,
    ) -> None:
        self.writer = writer
        self.chunk_size = chunk_size
        self.logger = logger_ or logging.getLogger(__name__)

    # --- Public API ---
    async def ingest(self, content: Any, metadata: Mapping[str, Any] | None = None) -> IngestionResult:
        """Ingest a document. Never raises; failures are reported in the result."""
        metadata = dict(metadata or {})
        return await self._ingest(content, metadata, source=metadata.get("source") or DEFAULT_SOURCE)

    async def ingest_confluence_page(
        self, content: Any, metadata: Mapping[str, Any] | None = None
    ) -> IngestionResult:
        return await self._ingest(content, dict(metadata or {}), source=CONFLUENCE_SOURCE)

    async def ingest_directory(
        self,
        directory: str | Path,
        patterns: Sequence[str] = DEFAULT_FILE_PATTERNS,
    ) -> List[IngestionResult]:
        root = Path(directory)
        if not root.is_dir():
            raise InvalidInputError(f"Not a directory: {root}")

        files = sorted({path for pattern in patterns for path in root.glob(pattern) if path.is_file()})
        results: List[IngestionResult] = []
        for path in tqdm(files, desc="Ingesting", unit="files"):
            metadata = {
                "title": path.stem,
                "source": FILE_SOURCE,
                "uploadedAt": datetime.now(timezone.utc).isoformat(),
                "fileName": path.name,
            }
            results.append(await self.ingest(path.read_text(encoding="utf-8"), metadata))

        self.logger.info(
            "Directory ingested",
            extra={"files": len(files), "failed": sum(1 for r in results if not r.success)},
        )
        return results

    # --- Steps ---
    def prepare_chunks(self, content: Any) -> List[str]:
        if not isinstance(content, str) or not content.strip():
            raise InvalidInputError("Document content must be a non-empty string")
        return chunk_text(content, self.chunk_size)

    async def _ingest(self, content: Any, metadata: Dict[str, Any], source: str) -> IngestionResult:
        try:
            chunks = self.prepare_chunks(content)
        except InvalidInputError as exc:
            self.logger.warning("Rejected document", extra={"reason": str(exc)})
            return IngestionResult(success=False, message=str(exc))

        total = len(chunks)
        self.logger.info("Starting ingestion", extra={"chunks": total, "source": source, "title": metadata.get("title")})

        results = await asyncio.gather(
            *(
                self.writer.add_knowledge(
                    chunk,
                    {
                        **metadata,
                        "chunkIndex": index,
                        "totalChunks": total,
                        "source": source,
                        "storeType": "knowledge",
                    },
                )
                for index, chunk in enumerate(chunks)
            ),
            return_exceptions=True,
        )

        ids = [result for result in results if isinstance(result, str)]
        errors = [result for result in results if isinstance(result, BaseException)]

        if not errors:
            self.logger.info("Ingestion completed", extra={"chunks": total, "source": source})
            return IngestionResult(
                success=True,
                message=f"Successfully ingested {total} chunks from document into knowledge store",
                ids=ids,
                total_chunks=total,
            )

        first_error = errors[0]
        if ids:
            error: Exception = PartialIngestionError(
                f"{first_error} ({len(ids)} of {total} chunks ingested)",
                succeeded_ids=ids,
                failed=len(errors),
                total=total,
            )
        else:
            error = first_error if isinstance(first_error, Exception) else RuntimeError(str(first_error))
        self.logger.error(
            "Ingestion failed",
            extra={"failed": len(errors), "succeeded": len(ids), "total": total, "error": str(error)},
        )
        return IngestionResult(success=False, message=str(error), ids=ids, total_chunks=total)


__all__ = [
    "IngestionService",
    "IngestionResult",
    "KnowledgeWriter",
    "DEFAULT_SOURCE",
    "CONFLUENCE_SOURCE",
]
