"""Voice bot core implementation.

This module provides the main Bot class that extends discord.ext.commands.Bot and
orchestrates the bot's lifecycle: shared services, component (cog) attachment, slash
command registration for the configured guild, and graceful shutdown.
"""

from __future__ import annotations

import logging
from contextlib import suppress
from typing import TYPE_CHECKING, Any

import discord
from discord.ext import commands

from core.components import (
    ChatEventsManager,  # noqa: F401
    ComponentBase,
    SlashCommandManager,  # noqa: F401
)
from core.shared_data import SharedData
from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    from discord import app_commands

    from config.loader import Config


__all__: list[str] = ["Bot"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class Bot(commands.Bot):
    """Discord text-to-speech bot.

    Attributes:
        config (Config): Bot configuration settings.
        shared_data (SharedData): Coordinator, synthesizer and stores shared by all components.
        attached_components (list[ComponentBase]): Components attached in priority order.
    """

    def __init__(self, config: Config) -> None:
        logger.debug("Initialising %s", self.__class__.__name__)
        self._setup_discord_logger(logging.DEBUG if config.GENERAL.DEBUG else logging.WARNING)

        self.config: Config = config
        self.shared_data: SharedData = SharedData(config)
        self._closed: bool = False
        self.attached_components: list[ComponentBase] = []

        intents: discord.Intents = discord.Intents.default()
        intents.message_content = True
        intents.voice_states = True

        super().__init__(command_prefix=config.DISCORD.COMMAND_PREFIX, intents=intents)

    @property
    def guild_object(self) -> discord.Object:
        """The guild slash commands are registered to."""
        return discord.Object(id=int(self.config.SECRETS.GUILD_ID))

    @staticmethod
    def _setup_discord_logger(log_level: int) -> None:
        """Route discord.py's logger through the LoggerUtils handlers."""
        LoggerUtils.share_handlers("discord", log_level)
        logger.debug("discord.py logger set up with LoggerUtils configuration")

    async def setup_hook(self) -> None:
        """Initialize shared services, attach components and register slash commands."""
        logger.debug("Setting up %s", self.__class__.__name__)
        await self.shared_data.async_init(self)

        for descriptor in ComponentBase.component_priority_list():
            await self.attach_component(descriptor.component(self))

        await self.register_commands()

    async def register_commands(self) -> None:
        guild: discord.Object = self.guild_object
        self.tree.copy_global_to(guild=guild)
        try:
            synced: list[app_commands.AppCommand] = await self.tree.sync(guild=guild)
        except discord.HTTPException as err:
            logger.error("Failed to register slash commands: %s", err)
            return
        logger.info("Registered %d slash command(s) for guild %s", len(synced), guild.id)

    async def attach_component(self, component: ComponentBase) -> None:
        logger.debug("Attaching component: %s", component.__class__.__name__)
        try:
            await self.add_cog(component)
        except (discord.ClientException, TypeError) as err:
            logger.error("Failed to load component %s: %s", component.__class__.__name__, err)
            return

        self.attached_components.append(component)
        logger.debug("Successfully attached component: %s", component.__class__.__name__)

    async def detach_component(self, component: ComponentBase) -> None:
        logger.debug("Detaching component: %s", component.__class__.__name__)
        try:
            await self.remove_cog(component.qualified_name)
        except Exception as err:  # noqa: BLE001
            logger.error("Unexpected error while detaching component %s: %s", component.__class__.__name__, err)
        else:
            logger.debug("Successfully detached component: %s", component.__class__.__name__)
        finally:
            with suppress(ValueError):
                self.attached_components.remove(component)

    # --------------------------------------------------
    # discord.py events
    # --------------------------------------------------
    async def on_ready(self) -> None:
        logger.info("Logged in as %s", self.user)
        print(f"Logged in as {self.user}")

    async def on_error(self, event_method: str, /, *args: Any, **kwargs: Any) -> None:
        _ = args, kwargs
        logger.exception("Event error in '%s'", event_method)

    async def close(self) -> None:
        """Close the bot and perform cleanup once, even if called repeatedly."""
        if not self._closed:
            self._closed = True
            logger.info("Start shutdown sequence")
            for _component in reversed(self.attached_components):
                await self.detach_component(_component)
            await self.shared_data.close()
            logger.info("Shutdown sequence complete")
        await super().close()
