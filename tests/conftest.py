"""
Shared fixtures: deterministic embedder and LLM stand-ins.
"""

import asyncio
import string
from typing import Dict, List, Sequence

import pytest

from jarvis.errors import EmbeddingError
from jarvis.semantic.service import MemoryService
from jarvis.vector_store.memory_store import InMemoryVectorStore

ALPHABET = string.ascii_lowercase


def letter_vector(text: str) -> List[float]:
    """Letter counts plus a constant component so no vector is all zeros."""
    lowered = text.lower()
    return [float(lowered.count(ch)) for ch in ALPHABET] + [1.0]


class StubEmbedder:
    """
    Deterministic embedder. Texts containing any ``fail_on`` marker raise
    EmbeddingError; texts containing a ``gates`` key wait for that event.
    """

    def __init__(self, fail_on: Sequence[str] = ()) -> None:
        self.fail_on = list(fail_on)
        self.gates: Dict[str, asyncio.Event] = {}
        self.calls: List[str] = []

    def hold(self, marker: str) -> asyncio.Event:
        gate = asyncio.Event()
        self.gates[marker] = gate
        return gate

    async def embed_texts(self, texts: Sequence[str]) -> List[List[float]]:
        vectors = []
        for text in texts:
            self.calls.append(text)
            if not text:
                raise EmbeddingError("Cannot embed empty or non-string input")
            for marker, gate in self.gates.items():
                if marker in text:
                    await gate.wait()
            await asyncio.sleep(0)
            if any(marker in text for marker in self.fail_on):
                raise EmbeddingError(f"quota exceeded for {text[:10]!r}")
            vectors.append(letter_vector(text))
        return vectors

    async def embed_text(self, text: str) -> List[float]:
        return (await self.embed_texts([text]))[0]


class StubLLM:
    def __init__(self, reply: str = "Stub reply", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: List[List[dict]] = []

    async def chat(self, messages, max_tokens=None) -> str:
        self.calls.append(list(messages))
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def embedder() -> StubEmbedder:
    return StubEmbedder()


@pytest.fixture
def service(embedder: StubEmbedder) -> MemoryService:
    return MemoryService(
        embedder,
        memory_backend=InMemoryVectorStore("memory"),
        knowledge_backend=InMemoryVectorStore("knowledge"),
        chunk_size=1000,
    )


@pytest.fixture
def llm() -> StubLLM:
    return StubLLM()
