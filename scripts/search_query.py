"""
CLI: ingest a directory of text files into a fresh knowledge store and query it.

Example:
    python -m scripts.search_query --corpus-dir ./docs --query "release checklist" --mode knowledge
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from jarvis.config import settings, setup_logging
from jarvis.embeddings.client import EmbeddingsClient
from jarvis.rag.router import QueryMode
from jarvis.semantic.service import MemoryService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Ingest text files and search the stores by text query.")
    parser.add_argument("--corpus-dir", required=True, help="Directory with .txt/.md files to ingest")
    parser.add_argument("--query", "-q", required=True, help="Query text")
    parser.add_argument("--limit", type=int, default=settings.default_query_limit, help="How many results to return")
    parser.add_argument("--mode", choices=[m.value for m in QueryMode], default=QueryMode.KNOWLEDGE.value)
    parser.add_argument("--snippet", type=int, default=300, help="Snippet length")
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    service = MemoryService(EmbeddingsClient())
    await service.initialize()

    results = await service.ingestion.ingest_directory(args.corpus_dir)
    failed = [r for r in results if not r.success]
    for result in failed:
        print(f"Ingestion failed: {result.message}")

    items = await service.query(args.query, args.limit, QueryMode(args.mode))
    if not items:
        print("No results")
        return 1 if failed else 0

    for idx, item in enumerate(items, start=1):
        snippet = item.content[: args.snippet].replace("\n", " ")
        print(f"\n#{idx} origin={item.origin} score={item.score:.4f}")
        print("metadata:", item.metadata)
        print("text:", snippet + ("..." if len(item.content) > args.snippet else ""))
    return 1 if failed else 0


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    args = parse_args()
    try:
        code = asyncio.run(run(args))
    except Exception:
        logger.exception("Search failed")
        sys.exit(1)
    sys.exit(code)


if __name__ == "__main__":
    main()
