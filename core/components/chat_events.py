from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

import discord
from discord.ext import commands

from core.components.base import ComponentBase, Replies
from models.re_models import DIRECT_SPEAK_PREFIX
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

    from core.voice.errors import VoiceError


__all__: list[str] = ["ChatEventsManager"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class ChatEventsManager(ComponentBase):
    """Reads chat messages of the configured reading channel aloud.

    A message starting with ``/d`` is spoken and then deleted. Any other message
    starting with ``/`` is ignored.
    """

    priority: ClassVar[int] = 0

    async def cog_load(self) -> None:
        logger.debug("'%s' component loaded", self.__class__.__name__)

    async def cog_unload(self) -> None:
        logger.debug("'%s' component unloaded", self.__class__.__name__)

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None or message.author.bot:
            return

        raw: str = message.content or ""
        is_direct: bool = raw.startswith(DIRECT_SPEAK_PREFIX)
        text: str = self.sanitize(raw[len(DIRECT_SPEAK_PREFIX) :] if is_direct else raw)
        if not text:
            return
        if not is_direct and raw.startswith("/"):
            return
        if not self.channels.is_reading_channel(message.guild.id, message.channel.id):
            return

        channel: discord.VoiceChannel | discord.StageChannel | None = self.voice_channel_of(message.author)
        if channel is None:
            await self.reply_message(message, Replies.ENTER_VOICE_FIRST)
            return

        if is_direct:
            try:
                await message.delete()
            except discord.HTTPException as err:
                logger.warning("Failed to delete message %d: %s", message.id, err)

        async def on_failure(error: VoiceError) -> None:
            _ = error
            await self.reply_message(message, Replies.PLAYBACK_FAILED)

        logger.debug("Reading message %d from %s", message.id, message.author)
        await self.speak(channel, message.author.id, text, on_failure)
