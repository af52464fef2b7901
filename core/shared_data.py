"""Shared data management for bot components.

This module defines the SharedData class, a container for the services every cog
uses: the voice coordinator, the speech synthesizer, the voice preference store and
the reading-channel store.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from core.channel_config import ReadingChannelStore
from core.preferences import VoicePreferenceStore
from core.tts.synthesis import OpenAISpeechSynthesizer
from core.voice.coordinator import VoiceCoordinator
from core.voice.discord_transport import DiscordVoiceTransport
from utils.file_utils import FileUtils
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    import discord

    from config.loader import Config

__all__: list[str] = ["SharedData"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


@dataclass
class SharedData:
    _config: Config = field()
    _preferences: VoicePreferenceStore = field(init=False)
    _channels: ReadingChannelStore = field(init=False)
    _synthesizer: OpenAISpeechSynthesizer = field(init=False)
    _coordinator: VoiceCoordinator = field(init=False)

    async def async_init(self, client: discord.Client) -> None:
        self._preferences = VoicePreferenceStore(
            FileUtils.resolve_path(self.config.PREFERENCES.VOICE_FILE),
            default_voice=self.config.TTS.DEFAULT_VOICE,
        )
        self._preferences.load()
        self._channels = ReadingChannelStore()
        self._synthesizer = OpenAISpeechSynthesizer(self.config.TTS, self.config.SECRETS.OPENAI_API_KEY)
        transport: DiscordVoiceTransport = DiscordVoiceTransport(
            client,
            self_deaf=self.config.DISCORD.SELF_DEAF,
            monitor_interval=self.config.VOICE.MONITOR_INTERVAL,
        )
        self._coordinator = VoiceCoordinator(transport, self._synthesizer, self.config.VOICE)

    async def close(self) -> None:
        """Leave every voice channel and close the HTTP session."""
        if hasattr(self, "_coordinator"):
            await self._coordinator.close()
        if hasattr(self, "_synthesizer"):
            await self._synthesizer.close()
        logger.debug("Shared data closed")

    @property
    def config(self) -> Config:
        return self._config

    @property
    def preferences(self) -> VoicePreferenceStore:
        return self._preferences

    @property
    def channels(self) -> ReadingChannelStore:
        return self._channels

    @property
    def coordinator(self) -> VoiceCoordinator:
        return self._coordinator
