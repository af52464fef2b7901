"""Joins, watches and tears down the voice connection of each guild.

Health of a session's connection follows a small state machine::

    CONNECTED -> DISCONNECTED -> RECOVERING -> CONNECTED
                              \\-> DEAD (teardown)

After a disconnect a single grace window is opened; the transport must be seen
signalling or connecting again before it closes, otherwise the session is dead.
A DESTROYED connection always tears its session down.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING

from core.voice.background import spawn
from core.voice.errors import ConnectionLostError, ConnectionTimeoutError
from core.voice.playback_queue import PlaybackQueue
from core.voice.session import Session
from core.voice.status_tracker import StatusTracker
from models.voice_models import ConnectionStatus, HealthState
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.voice.interface import AudioPlayer, VoiceConnection, VoiceTransport
    from core.voice.playback_driver import PlaybackDriver
    from core.voice.registry import SessionRegistry
    from models.config_models import VoiceTimeouts

__all__: list[str] = ["ConnectionLifecycleManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class ConnectionLifecycleManager:
    """Creates sessions on demand and owns their teardown.

    Args:
        transport (VoiceTransport): Creates connections and players.
        registry (SessionRegistry): Guild -> Session map.
        driver (PlaybackDriver): Passed to each new session's playback queue.
        timeouts (VoiceTimeouts): READY_TIMEOUT, RECOVERY_WINDOW and MAX_PENDING.
    """

    def __init__(
        self,
        transport: VoiceTransport,
        registry: SessionRegistry,
        driver: PlaybackDriver,
        timeouts: VoiceTimeouts,
    ) -> None:
        self.transport: VoiceTransport = transport
        self.registry: SessionRegistry = registry
        self.driver: PlaybackDriver = driver
        self.timeouts: VoiceTimeouts = timeouts

    async def ensure_ready(self, group_id: int, target_id: int) -> Session:
        """Return the guild's session once its connection is READY.

        A session joined to another channel, or one that is already closing, is torn
        down first; the old connection is destroyed before the new one is joined.

        Raises:
            ConnectionTimeoutError: READY was not reached within READY_TIMEOUT.
            ConnectionLostError: The session was torn down while waiting.
        """
        session: Session | None = self.registry.get(group_id)
        if session is not None and (session.closed or session.target_id != target_id):
            if session.target_id != target_id:
                logger.info("Guild %d moves from channel %d to %d", group_id, session.target_id, target_id)
            self.teardown(session, "target channel changed")
            session = None

        if session is None:
            session = self._create_session(group_id, target_id)

        try:
            await session.connection.tracker.wait_for(ConnectionStatus.READY, timeout=self.timeouts.READY_TIMEOUT)
        except TimeoutError as err:
            msg = f"Voice connection to channel {target_id} not ready within {self.timeouts.READY_TIMEOUT:.1f}s"
            raise ConnectionTimeoutError(msg) from err
        return session

    def _create_session(self, group_id: int, target_id: int) -> Session:
        connection: VoiceConnection = self.transport.join(group_id, target_id)
        player: AudioPlayer = self.transport.create_player(group_id)
        connection.subscribe(player)

        session: Session = Session(group_id=group_id, target_id=target_id, connection=connection, player=player)
        session.queue = PlaybackQueue(session, self.driver, self.timeouts.MAX_PENDING)
        connection.on_status(lambda old, new: self._on_connection_status(session, old, new))
        self.registry.add(session)
        logger.info("Created %s", session)
        return session

    def _on_connection_status(self, session: Session, old: ConnectionStatus, new: ConnectionStatus) -> None:
        logger.debug("%s connection: %s -> %s", session, old, new)
        if session.closed:
            return

        match new:
            case ConnectionStatus.DESTROYED:
                self.teardown(session, "connection destroyed")
            case ConnectionStatus.DISCONNECTED:
                if session.health in (HealthState.CONNECTED, HealthState.RECOVERING):
                    self._open_recovery_window(session)
            case ConnectionStatus.READY:
                if session.health is not HealthState.CONNECTED:
                    self._set_health(session, HealthState.CONNECTED)
            case _:
                pass

    def _open_recovery_window(self, session: Session) -> None:
        self._set_health(session, HealthState.DISCONNECTED)
        # registered synchronously so a reconnect that starts right away is not missed
        waiter: asyncio.Future[ConnectionStatus] = session.connection.tracker.expect(
            ConnectionStatus.SIGNALLING, ConnectionStatus.CONNECTING, include_current=False
        )
        if session.recovery is not None and not session.recovery.done():
            session.recovery.cancel()
        session.recovery = spawn(self._await_recovery(session, waiter), name=f"voice-recovery[{session.group_id}]")

    async def _await_recovery(self, session: Session, waiter: asyncio.Future[ConnectionStatus]) -> None:
        window: float = self.timeouts.RECOVERY_WINDOW
        try:
            status: ConnectionStatus = await StatusTracker.wait_future(waiter, timeout=window)
        except TimeoutError:
            if session.closed:
                return
            self._set_health(session, HealthState.DEAD)
            error: ConnectionLostError = ConnectionLostError(f"No reconnect within {window:.1f}s")
            logger.warning("%s is dead: %s", session, error)
            self.teardown(session, str(error))
            return
        except ConnectionLostError:
            return

        if session.closed:
            return
        logger.info("%s is reconnecting (%s)", session, status)
        if session.health is HealthState.DISCONNECTED:
            self._set_health(session, HealthState.RECOVERING)
        if session.connection.status is ConnectionStatus.READY:
            self._set_health(session, HealthState.CONNECTED)

    @staticmethod
    def _set_health(session: Session, health: HealthState) -> None:
        if session.health is health:
            return
        logger.info("Guild %d health: %s -> %s", session.group_id, session.health, health)
        session.health = health

    def teardown(self, session: Session, reason: str = "", *, requested: bool = False) -> None:
        """Release everything the session owns. Synchronous, idempotent, never raises.

        Force-stops playback, destroys the connection, fails in-flight and pending
        tasks with ConnectionLostError, fails every status waiter and unregisters
        the session. A ``requested`` teardown (an explicit leave) stops the in-flight
        clip without reporting it as failed.
        """
        if session.closed:
            return
        session.closed = True
        logger.info("Tearing down %s%s", session, f": {reason}" if reason else "")
        error: ConnectionLostError = ConnectionLostError(reason or "voice session closed")

        try:
            session.player.stop(force=True)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to stop the player of %s", session)

        try:
            if not session.connection.destroyed:
                session.connection.destroy()
        except Exception:  # noqa: BLE001
            logger.exception("Failed to destroy the connection of %s", session)

        try:
            if session.queue is not None:
                session.queue.close(error, quiet_current=requested)
        except Exception:  # noqa: BLE001
            logger.exception("Failed to close the playback queue of %s", session)

        session.player.tracker.close(error)
        session.connection.tracker.close(error)

        recovery: asyncio.Task[None] | None = session.recovery
        session.recovery = None
        if recovery is not None and not recovery.done():
            with contextlib.suppress(RuntimeError):
                if recovery is not asyncio.current_task():
                    recovery.cancel()

        if not self.registry.remove(session.group_id, session):
            logger.debug("%s was already replaced in the registry", session)

    def close_all(self) -> int:
        """Tear down every registered session.

        Returns:
            int: Number of sessions torn down.
        """
        return self.registry.close_all(lambda session: self.teardown(session, "shutting down"))
