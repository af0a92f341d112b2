"""
Error taxonomy for the memory and knowledge layer.
"""

from __future__ import annotations

from typing import List, Sequence


class JarvisError(Exception):
    """Base class for all errors raised by the core."""


class EmbeddingError(JarvisError):
    """The embedding call failed (quota, auth, network or malformed input)."""


class InvalidInputError(JarvisError):
    """The caller passed empty or non-string content."""


class StoreUninitializedRecoverable(JarvisError):
    """A store was used before initialisation. Fixed by lazy init, never surfaced."""


class StaleWriteError(JarvisError):
    """A write finished after its store moved to a new generation and was discarded."""


class PartialIngestionError(JarvisError):
    """Some chunks of a multi-chunk document failed to index."""

    def __init__(self, message: str, succeeded_ids: Sequence[str], failed: int, total: int) -> None:
        super().__init__(message)
        self.succeeded_ids: List[str] = list(succeeded_ids)
        self.failed = failed
        self.total = total


__all__ = [
    "JarvisError",
    "EmbeddingError",
    "InvalidInputError",
    "StoreUninitializedRecoverable",
    "StaleWriteError",
    "PartialIngestionError",
]
