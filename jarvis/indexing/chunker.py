"""
Text chunking utilities.
"""

from __future__ import annotations

import re
from typing import List

from jarvis.config import settings

CHUNK_SIZE_CHARS = settings.chunk_size_chars
PARAGRAPH_SEPARATOR = "\n\n"
PARAGRAPH_BOUNDARY = re.compile(r"\n\s*\n")


def split_paragraphs(text: str) -> List[str]:
    """
    Split text on blank lines (whitespace-only lines count as blank).
    Empty paragraphs are dropped.
    """
    if not text:
        return []
    return [paragraph for paragraph in PARAGRAPH_BOUNDARY.split(text) if paragraph.strip()]


def chunk_text(text: str, max_size: int = CHUNK_SIZE_CHARS) -> List[str]:
    """
    Greedily pack paragraphs into chunks of at most ``max_size`` characters,
    joined by a blank line.

    A paragraph longer than ``max_size`` is not split further and becomes a
    chunk of its own.
    """
    if max_size <= 0:
        raise ValueError("max_size must be positive")

    chunks: List[str] = []
    current = ""

    for paragraph in split_paragraphs(text):
        separator_len = len(PARAGRAPH_SEPARATOR) if current else 0
        if current and len(current) + separator_len + len(paragraph) > max_size:
            chunks.append(current)
            current = paragraph
        else:
            current = f"{current}{PARAGRAPH_SEPARATOR}{paragraph}" if current else paragraph

    if current:
        chunks.append(current)

    return chunks


__all__ = ["chunk_text", "split_paragraphs", "CHUNK_SIZE_CHARS", "PARAGRAPH_SEPARATOR"]
