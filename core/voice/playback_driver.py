"""Drives a single clip through the player: awaiting resource -> starting -> playing.

No state is skipped and none is retried. Any failure ends the clip and is raised to
the playback queue, which reports it to the requester.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from core.voice.errors import PlaybackStartTimeoutError, PlaybackTimeoutError, SynthesisFailedError, VoiceError
from core.voice.status_tracker import StatusTracker
from models.voice_models import PlayerStatus
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.voice.interface import AudioPlayer
    from core.voice.playback_task import PlaybackTask
    from models.config_models import VoiceTimeouts
    from models.voice_models import AudioResource

__all__: list[str] = ["PlaybackDriver", "playback_timeout"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


def playback_timeout(text: str, *, per_char: float = 0.6, minimum: float = 10.0, maximum: float = 120.0) -> float:
    """Upper bound, in seconds, for how long a clip of ``text`` may keep playing.

    Speech length grows with the input, so the bound is ``len(text) * per_char`` clamped
    to ``[minimum, maximum]``. Computed in whole milliseconds to stay exact.
    """
    per_char_ms: int = round(per_char * 1000)
    bound_ms: int = min(round(maximum * 1000), max(round(minimum * 1000), len(text) * per_char_ms))
    return bound_ms / 1000


def _discard_future(future: asyncio.Future[PlayerStatus]) -> None:
    if not future.done():
        future.cancel()
    elif not future.cancelled():
        future.exception()


class PlaybackDriver:
    """Plays one PlaybackTask on a player, bounding every wait.

    Args:
        timeouts (VoiceTimeouts): START_TIMEOUT and the playback clamp parameters.
    """

    def __init__(self, timeouts: VoiceTimeouts) -> None:
        self.timeouts: VoiceTimeouts = timeouts

    def timeout_for(self, text: str) -> float:
        return playback_timeout(
            text,
            per_char=self.timeouts.PLAYBACK_PER_CHAR,
            minimum=self.timeouts.MIN_PLAYBACK,
            maximum=self.timeouts.MAX_PLAYBACK,
        )

    async def play(self, player: AudioPlayer, task: PlaybackTask) -> None:
        """Play ``task`` to completion.

        Raises:
            SynthesisFailedError: The synthesis future failed.
            PlaybackStartTimeoutError: The player did not report PLAYING in time.
            PlaybackTimeoutError: The player did not return to IDLE within the bound.
            ConnectionLostError: The session was torn down while waiting.
        """
        resource: AudioResource = await self._await_resource(task)

        # Both waiters are registered before play() so that no transition can be missed.
        playing: asyncio.Future[PlayerStatus] = player.tracker.expect(PlayerStatus.PLAYING, include_current=False)
        idle: asyncio.Future[PlayerStatus] = player.tracker.expect(PlayerStatus.IDLE, include_current=False)
        try:
            await self._start(player, task, resource, playing)
            await self._wait_finished(player, task, idle)
        finally:
            _discard_future(playing)
            _discard_future(idle)

    async def _await_resource(self, task: PlaybackTask) -> AudioResource:
        if task.synthesis.cancelled():
            msg = f"Synthesis was cancelled for {task}"
            raise SynthesisFailedError(msg)
        try:
            return await task.synthesis
        except VoiceError:
            raise
        except Exception as err:
            msg = f"Synthesis failed: {err}"
            raise SynthesisFailedError(msg) from err

    async def _start(
        self,
        player: AudioPlayer,
        task: PlaybackTask,
        resource: AudioResource,
        playing: asyncio.Future[PlayerStatus],
    ) -> None:
        logger.debug("Starting %s (%r)", task, resource)
        try:
            player.play(resource)
        except Exception as err:
            msg = f"Player refused {task}: {err}"
            raise PlaybackStartTimeoutError(msg) from err

        try:
            await StatusTracker.wait_future(playing, timeout=self.timeouts.START_TIMEOUT)
        except TimeoutError as err:
            self._force_stop(player)
            msg = f"Playback did not start within {self.timeouts.START_TIMEOUT:.1f}s"
            raise PlaybackStartTimeoutError(msg) from err
        logger.info("Playing %s", task)

    async def _wait_finished(self, player: AudioPlayer, task: PlaybackTask, idle: asyncio.Future[PlayerStatus]) -> None:
        bound: float = self.timeout_for(task.text)
        try:
            await StatusTracker.wait_future(idle, timeout=bound)
        except TimeoutError as err:
            self._force_stop(player)
            msg = f"Playback did not finish within {bound:.1f}s"
            raise PlaybackTimeoutError(msg) from err
        logger.info("Finished %s", task)

    @staticmethod
    def _force_stop(player: AudioPlayer) -> None:
        # a stuck clip must not block the next play() call
        with contextlib.suppress(Exception):
            player.stop(force=True)
