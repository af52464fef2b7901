from __future__ import annotations

import asyncio
import itertools
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from utils.logger_utils import LoggerUtils
from utils.string_utils import StringUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Awaitable, Callable

    from core.voice.errors import VoiceError
    from models.voice_models import AudioResource

__all__: list[str] = ["FailureNotifier", "PlaybackTask", "report_failure"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

type FailureNotifier = Callable[[VoiceError], Awaitable[None]]

_task_ids: itertools.count[int] = itertools.count(1)


@dataclass(eq=False)
class PlaybackTask:
    """One speak request accepted into a guild's queue.

    Owned by the queue until it has played or failed. Never retried: a failure is
    reported once through ``on_failure`` and the task is discarded.

    Attributes:
        text (str): Sanitized text to speak.
        voice (str): Voice identifier.
        synthesis (asyncio.Future[AudioResource]): Synthesis started at enqueue time.
        on_failure (FailureNotifier | None): Caller-supplied failure callback.
        task_id (int): Process-unique sequence number, for logs.
    """

    text: str
    voice: str
    synthesis: asyncio.Future[AudioResource]
    on_failure: FailureNotifier | None = None
    task_id: int = field(default_factory=lambda: next(_task_ids))
    _notified: bool = field(default=False, init=False, repr=False)

    def __str__(self) -> str:
        return f"<task #{self.task_id} voice: {self.voice}, text: {StringUtils.preview(self.text)!r}>"

    @property
    def notified(self) -> bool:
        return self._notified

    async def notify_failure(self, error: VoiceError) -> None:
        """Report ``error`` to the caller at most once.

        A failing notifier is logged and ignored: it must never break the queue.
        """
        if self._notified:
            logger.debug("%s already notified, dropping %r", self, error)
            return
        self._notified = True
        logger.warning("%s failed: %s: %s", self, type(error).__name__, error)
        if self.on_failure is None:
            return
        try:
            await self.on_failure(error)
        except Exception:  # noqa: BLE001
            logger.exception("Failure notifier raised for %s", self)

    def discard(self) -> None:
        """Cancel synthesis that is no longer needed and consume any stored exception."""
        if not self.synthesis.done():
            self.synthesis.cancel()
            return
        if not self.synthesis.cancelled():
            # mark a stored exception as retrieved
            self.synthesis.exception()


async def report_failure(on_failure: FailureNotifier | None, error: VoiceError) -> None:
    """Report ``error`` for a request that never became a PlaybackTask."""
    logger.warning("Request rejected: %s: %s", type(error).__name__, error)
    if on_failure is None:
        return
    try:
        await on_failure(error)
    except Exception:  # noqa: BLE001
        logger.exception("Failure notifier raised")
