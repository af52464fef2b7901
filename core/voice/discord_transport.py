"""discord.py implementation of the voice transport.

``discord.VoiceClient`` exposes no status events, so each connection runs a monitor
task that polls ``is_connected()`` and maps it onto ConnectionStatus transitions.
The voice client it joins with also forwards its gateway updates: a new voice server
means discord.py is renegotiating (SIGNALLING), and a voice state without a channel
means the bot was removed from voice (DESTROYED).
Playback completion arrives on discord.py's audio thread and is marshalled back to
the event loop before the player reports IDLE.
"""

from __future__ import annotations

import asyncio
import contextlib
from typing import TYPE_CHECKING, Any

import discord

from core.voice.background import spawn
from core.voice.interface import AudioPlayer, VoiceConnection, VoiceTransport
from models.voice_models import ConnectionStatus, PlayerStatus
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from models.voice_models import AudioResource

__all__: list[str] = ["DiscordAudioPlayer", "DiscordVoiceConnection", "DiscordVoiceTransport", "ObservedVoiceClient"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

# discord.py's own connect timeout; READY_TIMEOUT in the core is the effective bound
CONNECT_TIMEOUT: float = 30.0


class ObservedVoiceClient(discord.VoiceClient):
    """``discord.VoiceClient`` that reports its gateway voice updates to a connection."""

    def __init__(
        self,
        client: discord.Client,
        channel: discord.abc.Connectable,
        connection: DiscordVoiceConnection,
    ) -> None:
        super().__init__(client, channel)
        self.connection: DiscordVoiceConnection = connection

    async def on_voice_server_update(self, data: Any) -> None:
        self.connection.renegotiating()
        await super().on_voice_server_update(data)

    async def on_voice_state_update(self, data: Any) -> None:
        channel_id: Any = data.get("channel_id")
        self.connection.voice_state_changed(int(channel_id) if channel_id is not None else None)
        await super().on_voice_state_update(data)


class DiscordVoiceConnection(VoiceConnection):
    """One ``discord.VoiceClient`` joined to a fixed voice channel.

    Args:
        client (discord.Client): Connected bot client.
        group_id (int): Guild identifier.
        target_id (int): Voice channel identifier.
        self_deaf (bool): Join deafened.
        monitor_interval (float): Seconds between ``is_connected()`` polls.
    """

    def __init__(
        self,
        client: discord.Client,
        group_id: int,
        target_id: int,
        *,
        self_deaf: bool = False,
        monitor_interval: float = 1.0,
    ) -> None:
        super().__init__(group_id, target_id)
        self.client: discord.Client = client
        self.self_deaf: bool = self_deaf
        self.monitor_interval: float = monitor_interval
        self.voice_client: discord.VoiceClient | None = None
        self.player: DiscordAudioPlayer | None = None
        self._connect_task: asyncio.Task[None] | None = None
        self._monitor_task: asyncio.Task[None] | None = None
        # gateway updates are only mapped once the first join completed
        self._joined: bool = False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} guild: {self.group_id}, channel: {self.target_id}, status: {self.status}>"

    def start(self) -> None:
        self._connect_task = asyncio.create_task(self._connect(), name=f"voice-connect[{self.group_id}]")

    def subscribe(self, player: AudioPlayer) -> None:
        if not isinstance(player, DiscordAudioPlayer):
            msg = f"Unsupported player type: {type(player).__name__}"
            raise TypeError(msg)
        self.player = player
        player.connection = self

    def destroy(self) -> None:
        if self.destroyed:
            return
        current: asyncio.Task[Any] | None = asyncio.current_task()
        for task in (self._connect_task, self._monitor_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._connect_task = None
        self._monitor_task = None

        voice_client: discord.VoiceClient | None = self.voice_client
        self.voice_client = None
        if voice_client is not None:
            spawn(self._disconnect(voice_client), name=f"voice-disconnect[{self.group_id}]")
        self.tracker.transition(ConnectionStatus.DESTROYED)

    @staticmethod
    async def _disconnect(voice_client: discord.VoiceClient) -> None:
        try:
            await voice_client.disconnect(force=True)
        except (discord.DiscordException, OSError) as err:
            logger.warning("Voice disconnect failed: %s", err)

    def _resolve_channel(self) -> discord.VoiceChannel | discord.StageChannel | None:
        guild: discord.Guild | None = self.client.get_guild(self.group_id)
        if guild is None:
            return None
        channel: Any = guild.get_channel(self.target_id)
        if isinstance(channel, (discord.VoiceChannel, discord.StageChannel)):
            return channel
        return None

    async def _connect(self) -> None:
        channel: discord.VoiceChannel | discord.StageChannel | None = self._resolve_channel()
        if channel is None:
            logger.error("Voice channel %d not found in guild %d", self.target_id, self.group_id)
            self.destroy()
            return

        # a client left over from an earlier session blocks channel.connect()
        stale: Any = channel.guild.voice_client
        if isinstance(stale, discord.VoiceClient):
            logger.debug("Disconnecting stale voice client of guild %d", self.group_id)
            await self._disconnect(stale)

        self.tracker.transition(ConnectionStatus.CONNECTING)
        try:
            voice_client: discord.VoiceClient = await channel.connect(
                timeout=CONNECT_TIMEOUT, reconnect=True, self_deaf=self.self_deaf, cls=self._make_voice_client
            )
        except (discord.DiscordException, OSError, TimeoutError) as err:
            logger.error("Failed to join voice channel '%s': %s", channel.name, err)
            self.destroy()
            return

        if self.destroyed:
            await self._disconnect(voice_client)
            return
        self.voice_client = voice_client
        self._joined = True
        logger.info("Joined voice channel '%s' (guild %d)", channel.name, self.group_id)
        self.tracker.transition(ConnectionStatus.READY)
        self._monitor_task = asyncio.create_task(self._monitor(), name=f"voice-monitor[{self.group_id}]")

    def _make_voice_client(self, client: discord.Client, channel: discord.abc.Connectable) -> ObservedVoiceClient:
        return ObservedVoiceClient(client, channel, self)

    async def _monitor(self) -> None:
        while not self.destroyed:
            await asyncio.sleep(self.monitor_interval)
            voice_client: discord.VoiceClient | None = self.voice_client
            if voice_client is None:
                return
            self.poll(voice_client.is_connected())

    def poll(self, connected: bool) -> None:
        """Map one ``is_connected()`` sample onto a status transition."""
        if self.destroyed:
            return
        status: ConnectionStatus = self.status
        if connected:
            if status is ConnectionStatus.DISCONNECTED:
                # discord.py reconnected between two samples
                self.tracker.transition(ConnectionStatus.CONNECTING)
            if self.status is not ConnectionStatus.READY:
                self.tracker.transition(ConnectionStatus.READY)
        elif status is ConnectionStatus.READY:
            logger.warning("Voice connection of guild %d lost", self.group_id)
            self.tracker.transition(ConnectionStatus.DISCONNECTED)

    def renegotiating(self) -> None:
        """discord.py received a new voice server and is reconnecting to it."""
        if self.destroyed or not self._joined:
            return
        if self.status in (ConnectionStatus.READY, ConnectionStatus.DISCONNECTED):
            logger.info("Voice connection of guild %d is renegotiating", self.group_id)
            self.tracker.transition(ConnectionStatus.SIGNALLING)

    def voice_state_changed(self, channel_id: int | None) -> None:
        """The bot's own voice state changed; ``None`` means it is no longer in voice."""
        if self.destroyed or not self._joined:
            return
        if channel_id is None:
            logger.warning("Removed from voice channel %d (guild %d)", self.target_id, self.group_id)
            self.destroy()
        elif channel_id != self.target_id:
            logger.info("Moved from voice channel %d to %d (guild %d)", self.target_id, channel_id, self.group_id)


class DiscordAudioPlayer(AudioPlayer):
    """Plays an AudioResource through the subscribed connection's ``VoiceClient``.

    Opus streams are passed through unchanged (``FFmpegOpusAudio`` with codec copy);
    anything else is decoded to PCM by FFmpeg.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, *, name: str = "player") -> None:
        super().__init__(name=name)
        self.loop: asyncio.AbstractEventLoop = loop
        self.connection: DiscordVoiceConnection | None = None
        # bumped on every play/stop so a late callback of a replaced clip is ignored
        self._generation: int = 0

    @staticmethod
    def make_source(resource: AudioResource) -> discord.AudioSource:
        if resource.stream_type.is_opus:
            return discord.FFmpegOpusAudio(resource.open(), pipe=True, codec="copy")
        return discord.FFmpegPCMAudio(resource.open(), pipe=True)

    def play(self, resource: AudioResource) -> None:
        voice_client: discord.VoiceClient | None = self.connection.voice_client if self.connection else None
        if voice_client is None or not voice_client.is_connected():
            msg = "Voice client is not connected"
            raise RuntimeError(msg)

        self._generation += 1
        generation: int = self._generation
        if voice_client.is_playing() or voice_client.is_paused():
            voice_client.stop()

        self.tracker.transition(PlayerStatus.BUFFERING)
        source: discord.AudioSource = self.make_source(resource)
        try:
            voice_client.play(source, after=lambda err: self._after(generation, err))
        except Exception:
            source.cleanup()
            self.tracker.transition(PlayerStatus.IDLE)
            raise
        self.tracker.transition(PlayerStatus.PLAYING)

    def _after(self, generation: int, error: Exception | None) -> None:
        # runs on discord.py's audio thread
        with contextlib.suppress(RuntimeError):
            self.loop.call_soon_threadsafe(self._finished, generation, error)

    def _finished(self, generation: int, error: Exception | None) -> None:
        if generation != self._generation:
            return
        if error is not None:
            logger.error("Player error: %s", error)
        self.tracker.transition(PlayerStatus.IDLE)

    def stop(self, *, force: bool = False) -> None:
        self._generation += 1
        voice_client: discord.VoiceClient | None = self.connection.voice_client if self.connection else None
        if voice_client is not None and (voice_client.is_playing() or voice_client.is_paused()):
            voice_client.stop()
        elif not force and self.status is PlayerStatus.IDLE:
            return
        self.tracker.transition(PlayerStatus.IDLE)


class DiscordVoiceTransport(VoiceTransport):
    """Creates discord.py backed connections and players.

    Args:
        client (discord.Client): The bot client.
        self_deaf (bool): Join voice channels deafened.
        monitor_interval (float): Seconds between connection polls.
    """

    def __init__(self, client: discord.Client, *, self_deaf: bool = False, monitor_interval: float = 1.0) -> None:
        self.client: discord.Client = client
        self.self_deaf: bool = self_deaf
        self.monitor_interval: float = monitor_interval

    def create_player(self, group_id: int) -> DiscordAudioPlayer:
        return DiscordAudioPlayer(asyncio.get_running_loop(), name=f"player[{group_id}]")

    def join(self, group_id: int, target_id: int) -> DiscordVoiceConnection:
        connection: DiscordVoiceConnection = DiscordVoiceConnection(
            self.client,
            group_id,
            target_id,
            self_deaf=self.self_deaf,
            monitor_interval=self.monitor_interval,
        )
        connection.start()
        return connection
