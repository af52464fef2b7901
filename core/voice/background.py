from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Coroutine

__all__: list[str] = ["background_tasks", "spawn"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

# The event loop only keeps weak references to tasks.
background_tasks: set[asyncio.Task[Any]] = set()


def _on_done(task: asyncio.Task[Any]) -> None:
    background_tasks.discard(task)
    if task.cancelled():
        return
    err: BaseException | None = task.exception()
    if err is not None:
        logger.error("Background task '%s' failed: %r", task.get_name(), err)


def spawn(coro: Coroutine[Any, Any, Any], *, name: str) -> asyncio.Task[Any]:
    """Run ``coro`` detached from the caller, logging any exception it ends with."""
    task: asyncio.Task[Any] = asyncio.create_task(coro, name=name)
    background_tasks.add(task)
    task.add_done_callback(_on_done)
    return task
