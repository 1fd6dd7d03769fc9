"""Serialized executor for live-priority recognition calls.

Live ticks from every session share one recognition backend. The sequencer
runs queued calls strictly one after another in arrival order. Final calls
never go through it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RecognitionCallSequencer:
    """FIFO queue of live recognition work items.

    Each item starts only after the previous one has settled. A failing or
    cancelled item releases the queue for the next one; its exception is
    delivered to its own caller only.
    """

    def __init__(self) -> None:
        # asyncio.Lock hands ownership to waiters in FIFO order.
        self._lock = asyncio.Lock()
        self._pending = 0

    @property
    def pending(self) -> int:
        """Number of items queued or running."""
        return self._pending

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def enqueue(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run fn after every previously enqueued item has settled.

        Args:
            fn: Zero-argument callable returning the awaitable to run.

        Returns:
            Whatever fn's awaitable returns.
        """
        self._pending += 1
        if self._pending > 1:
            logger.debug("Live recognition queued behind %d call(s)", self._pending - 1)
        try:
            async with self._lock:
                return await fn()
        finally:
            self._pending -= 1
