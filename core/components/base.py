"""Base component for Discord event handlers and slash commands.

This module provides the ComponentBase cog that all bot components inherit from.
It keeps a registry of component classes for the bot to attach at startup, and offers
the shared helpers for speaking a message and replying without raising.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar, NamedTuple

import discord
from discord.ext import commands

from handlers.text_sanitizer import TextSanitizer
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from config.loader import Config
    from core.bot import Bot
    from core.channel_config import ReadingChannelStore
    from core.preferences import VoicePreferenceStore
    from core.shared_data import SharedData
    from core.voice.coordinator import VoiceCoordinator
    from core.voice.playback_task import FailureNotifier


__all__: list[str] = ["ComponentBase", "ComponentDescriptor", "Replies"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class Replies:
    """User-facing reply texts."""

    GUILD_ONLY: ClassVar[str] = "이 명령은 서버에서만 사용할 수 있어요."
    EMPTY_TEXT: ClassVar[str] = "말할 문장을 입력해 주세요."
    JOIN_VOICE_FIRST: ClassVar[str] = "먼저 음성 채널에 참여해 주세요."
    ENTER_VOICE_FIRST: ClassVar[str] = "먼저 음성 채널에 들어와 주세요."
    WILL_SPEAK: ClassVar[str] = "음성으로 재생할게요."
    PLAYBACK_FAILED: ClassVar[str] = "재생에 실패했어요. 잠시 후 다시 시도해 주세요."
    READING_CHANNEL_SET: ClassVar[str] = "이 채널의 메시지만 읽을게요."
    VOICE_SELECTED: ClassVar[str] = "당신의 목소리를 '{voice}'로 설정했어요."
    LEFT_VOICE: ClassVar[str] = "음성 채널을 떠났어요."
    COMMAND_FAILED: ClassVar[str] = "명령 실행 중 오류가 발생했어요."


class ComponentDescriptor(NamedTuple):
    """Registry entry for a component class; lower priority attaches first."""

    component: type[ComponentBase]
    priority: int


class ComponentBase(commands.Cog):
    """Base class for bot components.

    Subclasses are registered automatically and attached by ``Bot.setup_hook`` in
    priority order.

    Attributes:
        bot (Bot): The bot instance.
        shared (SharedData): Services shared by all components.
        priority (ClassVar[int]): Attach order.
        component_registry (ClassVar[dict[str, ComponentDescriptor]]): All component classes by name.
    """

    priority: ClassVar[int] = 0
    component_registry: ClassVar[dict[str, ComponentDescriptor]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        ComponentBase.component_registry[cls.__name__] = ComponentDescriptor(component=cls, priority=cls.priority)

    @classmethod
    def component_priority_list(cls) -> list[ComponentDescriptor]:
        return sorted(cls.component_registry.values(), key=lambda d: (d.priority, d.component.__name__))

    def __init__(self, bot: Bot) -> None:
        """Initialize the component.

        Raises:
            RuntimeError: If shared data is not initialized.
        """
        self.bot: Bot = bot
        if bot.shared_data is None:
            msg = "Shared data is not initialized."
            raise RuntimeError(msg)
        self.shared: SharedData = bot.shared_data

    @property
    def config(self) -> Config:
        return self.shared.config

    @property
    def coordinator(self) -> VoiceCoordinator:
        return self.shared.coordinator

    @property
    def preferences(self) -> VoicePreferenceStore:
        return self.shared.preferences

    @property
    def channels(self) -> ReadingChannelStore:
        return self.shared.channels

    @staticmethod
    def sanitize(text: str | None) -> str:
        return TextSanitizer.sanitize(text)

    @staticmethod
    def voice_channel_of(member: object) -> discord.VoiceChannel | discord.StageChannel | None:
        """The voice channel ``member`` is currently in, if any."""
        voice: discord.VoiceState | None = getattr(member, "voice", None)
        if voice is None:
            return None
        return voice.channel

    async def speak(
        self,
        channel: discord.VoiceChannel | discord.StageChannel,
        user_id: int,
        text: str,
        on_failure: FailureNotifier | None = None,
    ) -> None:
        """Speak ``text`` in ``channel`` with the user's voice."""
        voice: str = self.preferences.resolve(user_id)
        await self.coordinator.speak(channel.guild.id, channel.id, text, voice, on_failure)

    @staticmethod
    async def reply_interaction(interaction: discord.Interaction, content: str) -> None:
        """Answer an interaction ephemerally, following up if it was already answered."""
        try:
            if interaction.response.is_done():
                await interaction.followup.send(content, ephemeral=True)
            else:
                await interaction.response.send_message(content, ephemeral=True)
        except discord.HTTPException as err:
            logger.warning("Failed to reply to interaction: %s", err)

    @staticmethod
    async def reply_message(message: discord.Message, content: str) -> None:
        try:
            await message.reply(content)
        except discord.HTTPException as err:
            logger.warning("Failed to reply to message %d: %s", message.id, err)
