from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from core.voice.background import spawn
from core.voice.errors import ConnectionLostError, QueueFullError, VoiceError
from utils.excludable_queue import ExcludableQueue
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.voice.playback_driver import PlaybackDriver
    from core.voice.playback_task import PlaybackTask
    from core.voice.session import Session

__all__: list[str] = ["PlaybackQueue"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class PlaybackQueue:
    """Per-session FIFO of PlaybackTasks consumed by a single worker task.

    Only the worker ever calls ``PlaybackDriver.play``, so at most one clip is in flight
    per session and clips play in acceptance order. Synthesis is started by the caller
    before ``enqueue``, so clip N+1 is usually ready when clip N finishes.

    Args:
        session (Session): Owning session; its player is the playback target.
        driver (PlaybackDriver): Plays one task at a time.
        max_pending (int): Maximum waiting tasks; 0 means unbounded.
    """

    def __init__(self, session: Session, driver: PlaybackDriver, max_pending: int = 0) -> None:
        self.session: Session = session
        self.driver: PlaybackDriver = driver
        self._queue: ExcludableQueue[PlaybackTask] = ExcludableQueue(maxsize=max_pending)
        self._worker: asyncio.Task[None] | None = None
        self._current: PlaybackTask | None = None
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def current(self) -> PlaybackTask | None:
        return self._current

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def busy(self) -> bool:
        return self._current is not None or not self._queue.empty()

    async def join(self) -> None:
        """Wait until every accepted task has played or failed."""
        await self._queue.join()

    def enqueue(self, task: PlaybackTask) -> bool:
        """Accept ``task`` for playback behind everything already queued.

        A rejected task is discarded and its requester is notified asynchronously.

        Returns:
            bool: True if the task was accepted.
        """
        if self._closed:
            self._reject(task, ConnectionLostError("The voice session is closed"))
            return False
        if not self._queue.offer(task):
            self._reject(task, QueueFullError(f"Playback queue is full ({self._queue.maxsize} pending)"))
            return False

        logger.debug("Queued %s (%d pending)", task, self._queue.qsize())
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name=f"playback[{self.session.group_id}]")
        return True

    def close(self, error: VoiceError, *, quiet_current: bool = False) -> None:
        """Stop the worker and fail the in-flight task and every pending task with ``error``.

        Synchronous and idempotent. Notifications are delivered by a background task in
        FIFO order, in-flight task first. With ``quiet_current`` the in-flight task is
        dropped without a notification, as when the bot is asked to leave mid-clip.
        """
        if self._closed:
            return
        self._closed = True

        failed: list[PlaybackTask] = []
        if self._current is not None:
            if quiet_current:
                logger.debug("Dropping %s without notification", self._current)
                self._current.discard()
            else:
                failed.append(self._current)
        failed.extend(self._queue.close())

        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        self._worker = None

        for task in failed:
            task.discard()
        if failed:
            logger.info("Failing %d task(s) of %s: %s", len(failed), self.session, error)
            spawn(self._notify_all(failed, error), name=f"playback-cleanup[{self.session.group_id}]")

    def _reject(self, task: PlaybackTask, error: VoiceError) -> None:
        task.discard()
        spawn(task.notify_failure(error), name=f"playback-reject[{task.task_id}]")

    @staticmethod
    async def _notify_all(tasks: list[PlaybackTask], error: VoiceError) -> None:
        for task in tasks:
            await task.notify_failure(error)

    async def _run(self) -> None:
        logger.debug("Playback worker started for %s", self.session)
        try:
            while True:
                task: PlaybackTask = await self._queue.get()
                self._current = task
                try:
                    await self.driver.play(self.session.player, task)
                except VoiceError as err:
                    await task.notify_failure(err)
                except Exception as err:  # noqa: BLE001
                    logger.exception("Unexpected error while playing %s", task)
                    await task.notify_failure(VoiceError(f"Unexpected playback error: {err}"))
                finally:
                    self._current = None
                    task.discard()
                    self._task_done()
        except asyncio.QueueShutDown:
            logger.debug("Playback queue closed for %s", self.session)
        finally:
            logger.debug("Playback worker finished for %s", self.session)

    def _task_done(self) -> None:
        try:
            self._queue.task_done()
        except ValueError:
            # already balanced by drain()
            pass
