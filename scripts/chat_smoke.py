"""
Smoke test for one chat turn, end to end.

Example:
    python -m scripts.chat_smoke --message "What is on my schedule?" --document notes.txt
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from jarvis.config import setup_logging
from jarvis.embeddings.client import EmbeddingsClient
from jarvis.llm.client import LLMClient
from jarvis.rag.pipeline import ChatService
from jarvis.rag.router import QueryMode
from jarvis.semantic.service import MemoryService


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Chat pipeline smoke test.")
    parser.add_argument("--message", "-m", help="User message; omit to ask for the next best action")
    parser.add_argument("--document", "-d", action="append", default=[], help="Text file to ingest first")
    parser.add_argument("--mode", choices=[m.value for m in QueryMode], default=QueryMode.BOTH.value)
    return parser.parse_args()


async def run(args: argparse.Namespace) -> None:
    memory = MemoryService(EmbeddingsClient())
    await memory.initialize()
    chat = ChatService(memory, LLMClient())

    for path in map(Path, args.document):
        result = await memory.ingest(path.read_text(encoding="utf-8"), {"title": path.stem, "source": "file"})
        print(f"{path.name}: {result.message}")

    if args.message:
        result = await chat.respond(args.message, mode=QueryMode(args.mode))
    else:
        result = await chat.next_action()

    print("\n=== Chat Smoke Result ===")
    print(f"ok: {result.ok}")
    print(f"reply:\n{result.reply}")
    print(f"\nContext items used: {len(result.context)}")
    for idx, item in enumerate(result.context, start=1):
        print(f"  #{idx} [{item.origin}] {item.content[:80]!r}")

    print("\nHistory:")
    for entry in await memory.get_conversation_history():
        speaker = "user" if entry["isUser"] else "jarvis"
        print(f"  {entry['timestamp']} {speaker}: {entry['text'][:80]!r}")


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    args = parse_args()
    try:
        asyncio.run(run(args))
    except Exception:
        logger.exception("Chat smoke failed")
        sys.exit(1)


if __name__ == "__main__":
    main()
