"""Observable status holder used by voice connections and audio players.

A StatusTracker keeps the current status of one object, lets coroutines wait for the
object to enter one of several statuses (with a bound), and notifies synchronous
listeners on every transition. Closing the tracker fails every pending waiter so no
coroutine is left suspended on an object that no longer exists.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Generic, TypeVar

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable

__all__: list[str] = ["StatusListener", "StatusTracker"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

S = TypeVar("S")

# listener(old_status, new_status)
type StatusListener[T] = Callable[[T, T], None]


class StatusTracker(Generic[S]):
    """Current status plus waiters and listeners.

    Args:
        initial (S): Status at creation.
        name (str): Label used in log messages.
    """

    def __init__(self, initial: S, *, name: str = "") -> None:
        self._status: S = initial
        self._name: str = name
        self._waiters: list[tuple[frozenset[S], asyncio.Future[S]]] = []
        self._listeners: list[StatusListener[S]] = []
        self._closed_error: BaseException | None = None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self._name} status: {self._status}>"

    @property
    def status(self) -> S:
        return self._status

    @property
    def closed(self) -> bool:
        return self._closed_error is not None

    def add_listener(self, listener: StatusListener[S]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StatusListener[S]) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def transition(self, new_status: S) -> None:
        """Move to ``new_status``, resolve matching waiters, then call listeners.

        Waiters are resolved in registration order. A transition to the current status
        is ignored. Listener exceptions are logged and do not stop other listeners.
        """
        old_status: S = self._status
        if new_status == old_status:
            return
        self._status = new_status
        logger.debug("%s: %s -> %s", self._name, old_status, new_status)

        pending: list[tuple[frozenset[S], asyncio.Future[S]]] = []
        for targets, future in self._waiters:
            if future.done():
                continue
            if new_status in targets:
                future.set_result(new_status)
            else:
                pending.append((targets, future))
        self._waiters = pending

        for listener in list(self._listeners):
            try:
                listener(old_status, new_status)
            except Exception:  # noqa: BLE001
                logger.exception("%s: status listener failed", self._name)

    def expect(self, *statuses: S, include_current: bool = True) -> asyncio.Future[S]:
        """Register interest in the next entry into any of ``statuses``.

        Registering before triggering an action guarantees that a fast
        A -> B -> A sequence cannot be missed between two awaits.

        Args:
            *statuses (S): Target statuses.
            include_current (bool): Resolve immediately if already in a target status.

        Returns:
            asyncio.Future[S]: Resolves to the status entered, or fails with the close error.
        """
        loop: asyncio.AbstractEventLoop = asyncio.get_running_loop()
        future: asyncio.Future[S] = loop.create_future()
        if self._closed_error is not None:
            future.set_exception(self._closed_error)
            return future

        targets: frozenset[S] = frozenset(statuses)
        if include_current and self._status in targets:
            future.set_result(self._status)
            return future

        self._waiters.append((targets, future))
        return future

    async def wait_for(self, *statuses: S, timeout: float, include_current: bool = True) -> S:
        """Wait until the tracked object enters one of ``statuses``.

        Raises:
            TimeoutError: If no target status is entered within ``timeout`` seconds.
            BaseException: The error the tracker was closed with, if it closes first.
        """
        future: asyncio.Future[S] = self.expect(*statuses, include_current=include_current)
        return await self.wait_future(future, timeout=timeout)

    @staticmethod
    async def wait_future(future: asyncio.Future[S], *, timeout: float) -> S:
        """Wait on a future obtained from ``expect`` with a bound, cancelling it on timeout."""
        try:
            async with asyncio.timeout(timeout):
                return await future
        finally:
            if not future.done():
                future.cancel()

    def close(self, error: BaseException) -> None:
        """Fail every pending and future waiter with ``error``. Idempotent."""
        if self._closed_error is not None:
            return
        self._closed_error = error
        waiters, self._waiters = self._waiters, []
        for _targets, future in waiters:
            if not future.done():
                future.set_exception(error)
        self._listeners.clear()
