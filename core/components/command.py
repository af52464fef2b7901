"""Slash command component.

Provides the guild slash commands: direct speech without a chat trace, choosing the
reading channel, choosing one's voice, and making the bot leave the voice channel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import discord
from discord import app_commands

from core.components.base import ComponentBase, Replies
from models.voice_models import ALLOWED_VOICES
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.voice.errors import VoiceError


__all__: list[str] = ["SlashCommandManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)

VOICE_CHOICES: list[app_commands.Choice[str]] = [app_commands.Choice(name=v, value=v) for v in ALLOWED_VOICES]


class SlashCommandManager(ComponentBase):
    """Handles the ``/d``, ``/voiceroom``, ``/selectvoice`` and ``/quit`` commands."""

    priority: ClassVar[int] = 10

    async def cog_load(self) -> None:
        logger.debug("'%s' component loaded", self.__class__.__name__)

    async def cog_unload(self) -> None:
        logger.debug("'%s' component unloaded", self.__class__.__name__)

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.guild_id is None:
            await self.reply_interaction(interaction, Replies.GUILD_ONLY)
            return False
        return True

    async def cog_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            return
        logger.error("Command '%s' failed: %s", getattr(interaction.command, "name", "?"), error, exc_info=error)
        await self.reply_interaction(interaction, Replies.COMMAND_FAILED)

    @app_commands.command(name="d", description="채팅기록 안 남기고 목소리만 내기")
    @app_commands.describe(text="Sentence for direct speech")
    async def direct_speak(self, interaction: discord.Interaction, text: str) -> None:
        """Speak ``text`` in the caller's voice channel without leaving a chat message."""
        logger.debug("Command 'd' invoked by user: %s", interaction.user)
        sanitized: str = self.sanitize(text)
        if not sanitized:
            await self.reply_interaction(interaction, Replies.EMPTY_TEXT)
            return

        channel: discord.VoiceChannel | discord.StageChannel | None = self.voice_channel_of(interaction.user)
        if channel is None:
            await self.reply_interaction(interaction, Replies.JOIN_VOICE_FIRST)
            return

        await self.reply_interaction(interaction, Replies.WILL_SPEAK)

        async def on_failure(error: VoiceError) -> None:
            _ = error
            await self.reply_interaction(interaction, Replies.PLAYBACK_FAILED)

        await self.speak(channel, interaction.user.id, sanitized, on_failure)

    @app_commands.command(name="voiceroom", description="이 채널을 보이스룸으로 설정합니다. 이 채널의 글만 읽습니다.")
    async def voiceroom(self, interaction: discord.Interaction) -> None:
        """Read aloud only the messages of the channel the command was issued in."""
        logger.debug("Command 'voiceroom' invoked by user: %s", interaction.user)
        if interaction.guild_id is None or interaction.channel_id is None:
            await self.reply_interaction(interaction, Replies.GUILD_ONLY)
            return
        self.channels.set(interaction.guild_id, interaction.channel_id)
        await self.reply_interaction(interaction, Replies.READING_CHANNEL_SET)

    @app_commands.command(name="selectvoice", description="TTS voice를 선택해주세요.")
    @app_commands.describe(voice="Choose a voice")
    @app_commands.choices(voice=VOICE_CHOICES)
    async def selectvoice(self, interaction: discord.Interaction, voice: app_commands.Choice[str]) -> None:
        """Store the caller's voice."""
        logger.debug("Command 'selectvoice' invoked by user: %s", interaction.user)
        selected: str = await self.preferences.set(interaction.user.id, voice.value)
        await self.reply_interaction(interaction, Replies.VOICE_SELECTED.format(voice=selected))

    @app_commands.command(name="quit", description="채널에서 정공봇을 내보냅니다.")
    async def quit(self, interaction: discord.Interaction) -> None:
        """Leave the voice channel of this guild."""
        logger.debug("Command 'quit' invoked by user: %s", interaction.user)
        if interaction.guild_id is not None:
            self.coordinator.leave(interaction.guild_id)
        await self.reply_interaction(interaction, Replies.LEFT_VOICE)
