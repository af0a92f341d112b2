"""
Bookkeeping for in-flight writes so readers can wait until a store is quiescent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Set, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class PendingOperationTracker:
    """
    Tracks add operations per store and generation.

    ``drain`` waits for everything tracked at call time and never raises;
    failures still reach whoever awaits the operation itself. ``advance``
    starts a new generation and forgets whatever was tracked for the old one.
    """

    def __init__(self, name: str = "store") -> None:
        self.name = name
        self.generation = 0
        self._pending: Set[asyncio.Future] = set()

    def __len__(self) -> int:
        return len(self._pending)

    def track(self, operation: Awaitable[T]) -> "asyncio.Future[T]":
        future = asyncio.ensure_future(operation)
        self._pending.add(future)
        future.add_done_callback(self._on_done)
        return future

    def _on_done(self, future: asyncio.Future) -> None:
        self._pending.discard(future)
        # mark the failure as observed; the add caller re-raises it on await
        if not future.cancelled():
            future.exception()

    async def drain(self) -> None:
        if not self._pending:
            return

        snapshot = list(self._pending)
        logger.info(
            "Waiting for pending operations",
            extra={"store": self.name, "pending": len(snapshot), "generation": self.generation},
        )
        # asyncio.wait does not cancel the operations if the reader is cancelled
        await asyncio.wait(snapshot)
        self._pending.difference_update(snapshot)
        logger.info("Pending operations completed", extra={"store": self.name, "drained": len(snapshot)})

    def advance(self) -> int:
        self._pending.clear()
        self.generation += 1
        return self.generation


__all__ = ["PendingOperationTracker"]
