from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["ExcludableQueue"]

T = TypeVar("T")

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class ExcludableQueue(asyncio.Queue[Any], Generic[T]):
    """FIFO queue whose pending items can be withdrawn in one step.

    Adds non-blocking admission (``offer``) and draining (``drain`` / ``close``) on top of
    ``asyncio.Queue``. Both run without awaiting, so they are atomic with respect to the
    event loop: no consumer can observe a half-drained queue.
    """

    def offer(self, item: T) -> bool:
        """Add an item without waiting.

        Args:
            item (T): The item to add.

        Returns:
            bool: False if the queue is bounded and full, or already shut down.
        """
        try:
            self.put_nowait(item)
        except asyncio.QueueFull:
            logger.debug("Queue full (maxsize=%d), item rejected", self.maxsize)
            return False
        except asyncio.QueueShutDown:
            logger.debug("Queue shut down, item rejected")
            return False
        return True

    def drain(self) -> list[T]:
        """Remove and return every pending item in FIFO order."""
        items: list[T] = []
        while True:
            try:
                items.append(self.get_nowait())
            except (asyncio.QueueEmpty, asyncio.QueueShutDown):
                break
            self.task_done()
        if items:
            logger.debug("Drained %d pending item(s)", len(items))
        return items

    def close(self) -> list[T]:
        """Drain the queue, then shut it down so waiting consumers wake with ``QueueShutDown``.

        Returns:
            list[T]: The items that were still pending.
        """
        items: list[T] = self.drain()
        self.shutdown()
        return items
