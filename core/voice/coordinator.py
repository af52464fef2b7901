from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from core.voice.connection_manager import ConnectionLifecycleManager
from core.voice.errors import ConnectionLostError, VoiceError
from core.voice.playback_driver import PlaybackDriver
from core.voice.playback_task import PlaybackTask, report_failure
from core.voice.registry import SessionRegistry
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.voice.interface import SpeechSynthesizer, VoiceTransport
    from core.voice.playback_task import FailureNotifier
    from core.voice.session import Session
    from models.config_models import VoiceTimeouts
    from models.voice_models import AudioResource

__all__: list[str] = ["VoiceCoordinator"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class VoiceCoordinator:
    """Entry point of the playback core: one speak request in, one voice clip out.

    For every guild it keeps at most one session, plays clips strictly one at a time
    in request order and reports any failure to the requester exactly once.

    Args:
        transport (VoiceTransport): Voice connections and players.
        synthesizer (SpeechSynthesizer): Text-to-speech provider.
        timeouts (VoiceTimeouts): Every bound used by the core.
    """

    def __init__(self, transport: VoiceTransport, synthesizer: SpeechSynthesizer, timeouts: VoiceTimeouts) -> None:
        self.synthesizer: SpeechSynthesizer = synthesizer
        self.registry: SessionRegistry = SessionRegistry()
        self.driver: PlaybackDriver = PlaybackDriver(timeouts)
        self.manager: ConnectionLifecycleManager = ConnectionLifecycleManager(
            transport, self.registry, self.driver, timeouts
        )
        # last queueing slot of each guild; a request queues only after its predecessor
        self._tails: dict[int, asyncio.Future[None]] = {}
        self._closed: bool = False

    async def speak(
        self,
        group_id: int,
        target_id: int,
        text: str,
        voice: str,
        on_failure: FailureNotifier | None = None,
    ) -> None:
        """Queue ``text`` for playback in ``target_id``.

        Returns once the request is queued or has failed. Playback completes later;
        failures at any stage are delivered to ``on_failure`` and never raised.

        The queue position is reserved on entry: concurrent requests of one guild
        wait for READY together but are queued in the order they were made.
        """
        if self._closed:
            await report_failure(on_failure, ConnectionLostError("The voice coordinator is shut down"))
            return

        previous: asyncio.Future[None] | None = self._tails.get(group_id)
        slot: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._tails[group_id] = slot
        error: VoiceError | None = None
        try:
            session: Session = await self.manager.ensure_ready(group_id, target_id)
            if previous is not None:
                await asyncio.shield(previous)

            if session.queue is None or session.closed:
                error = ConnectionLostError("The voice session closed before queueing")
            else:
                # synthesis runs while earlier clips are still playing
                synthesis: asyncio.Future[AudioResource] = asyncio.ensure_future(
                    self.synthesizer.synthesize(text, voice)
                )
                task: PlaybackTask = PlaybackTask(text=text, voice=voice, synthesis=synthesis, on_failure=on_failure)
                session.queue.enqueue(task)
        except VoiceError as err:
            error = err
        finally:
            self._release_slot(group_id, slot)

        if error is not None:
            await report_failure(on_failure, error)

    def _release_slot(self, group_id: int, slot: asyncio.Future[None]) -> None:
        if not slot.done():
            slot.set_result(None)
        if self._tails.get(group_id) is slot:
            del self._tails[group_id]

    def leave(self, group_id: int) -> bool:
        """Tear down the guild's session.

        Returns:
            bool: True if a session existed.
        """
        session: Session | None = self.registry.get(group_id)
        if session is None:
            return False
        self.manager.teardown(session, "left the voice channel", requested=True)
        return True

    def is_active(self, group_id: int) -> bool:
        return group_id in self.registry

    async def close(self) -> None:
        """Tear down every session. Further speak requests fail immediately."""
        if self._closed:
            return
        self._closed = True
        count: int = self.manager.close_all()
        logger.info("Voice coordinator closed (%d session(s) torn down)", count)
        # let the failure notifications of cancelled tasks run
        await asyncio.sleep(0)
