"""Unit tests for core.components.command module."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from discord import app_commands

from core.components.base import Replies
from core.components.command import VOICE_CHOICES, SlashCommandManager
from core.voice.errors import SynthesisFailedError
from models.voice_models import ALLOWED_VOICES


def _make_interaction(*, in_voice: bool = True, guild_id: int | None = 1) -> MagicMock:
    interaction = MagicMock()
    interaction.guild_id = guild_id
    interaction.channel_id = 500
    interaction.user.id = 42
    interaction.user.voice = None
    if in_voice:
        voice_channel = MagicMock()
        voice_channel.id = 10
        voice_channel.guild.id = 1
        interaction.user.voice = SimpleNamespace(channel=voice_channel)
    interaction.response.is_done = MagicMock(return_value=False)
    interaction.response.send_message = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


@pytest.fixture
def command_bundle() -> SimpleNamespace:
    coordinator = MagicMock()
    coordinator.speak = AsyncMock()
    coordinator.leave = MagicMock(return_value=True)

    preferences = MagicMock()
    preferences.resolve = MagicMock(return_value="nova")
    preferences.set = AsyncMock(side_effect=lambda user_id, voice: voice)

    channels = MagicMock()

    shared = MagicMock()
    shared.coordinator = coordinator
    shared.preferences = preferences
    shared.channels = channels

    bot = MagicMock()
    bot.shared_data = shared

    command = SlashCommandManager(bot)
    return SimpleNamespace(command=command, coordinator=coordinator, preferences=preferences, channels=channels)


@pytest.mark.asyncio
async def test_direct_speak_queues_sanitized_text(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction()

    await command_bundle.command.direct_speak.callback(command_bundle.command, interaction, "  ㄱㅊ  ")

    interaction.response.send_message.assert_awaited_once_with(Replies.WILL_SPEAK, ephemeral=True)
    command_bundle.preferences.resolve.assert_called_once_with(42)
    args = command_bundle.coordinator.speak.await_args.args
    assert args[:4] == (1, 10, "괜춘", "nova")


@pytest.mark.asyncio
async def test_direct_speak_failure_is_followed_up(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction()
    await command_bundle.command.direct_speak.callback(command_bundle.command, interaction, "hello")
    on_failure = command_bundle.coordinator.speak.await_args.args[4]
    interaction.response.is_done.return_value = True

    await on_failure(SynthesisFailedError("boom"))

    interaction.followup.send.assert_awaited_once_with(Replies.PLAYBACK_FAILED, ephemeral=True)


@pytest.mark.asyncio
async def test_direct_speak_requires_voice_channel(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction(in_voice=False)

    await command_bundle.command.direct_speak.callback(command_bundle.command, interaction, "hello")

    interaction.response.send_message.assert_awaited_once_with(Replies.JOIN_VOICE_FIRST, ephemeral=True)
    command_bundle.coordinator.speak.assert_not_awaited()


@pytest.mark.asyncio
async def test_direct_speak_rejects_empty_text(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction()

    await command_bundle.command.direct_speak.callback(command_bundle.command, interaction, "   ")

    interaction.response.send_message.assert_awaited_once_with(Replies.EMPTY_TEXT, ephemeral=True)
    command_bundle.coordinator.speak.assert_not_awaited()


@pytest.mark.asyncio
async def test_voiceroom_sets_reading_channel(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction()

    await command_bundle.command.voiceroom.callback(command_bundle.command, interaction)

    command_bundle.channels.set.assert_called_once_with(1, 500)
    interaction.response.send_message.assert_awaited_once_with(Replies.READING_CHANNEL_SET, ephemeral=True)


@pytest.mark.asyncio
async def test_selectvoice_stores_choice(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction()
    choice = app_commands.Choice(name="shimmer", value="shimmer")

    await command_bundle.command.selectvoice.callback(command_bundle.command, interaction, choice)

    command_bundle.preferences.set.assert_awaited_once_with(42, "shimmer")
    interaction.response.send_message.assert_awaited_once_with(
        Replies.VOICE_SELECTED.format(voice="shimmer"), ephemeral=True
    )


def test_voice_choices_cover_allowed_voices() -> None:
    assert [choice.value for choice in VOICE_CHOICES] == list(ALLOWED_VOICES)


@pytest.mark.asyncio
async def test_quit_leaves_voice_channel(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction()

    await command_bundle.command.quit.callback(command_bundle.command, interaction)

    command_bundle.coordinator.leave.assert_called_once_with(1)
    interaction.response.send_message.assert_awaited_once_with(Replies.LEFT_VOICE, ephemeral=True)


@pytest.mark.asyncio
async def test_interaction_check_rejects_direct_messages(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction(guild_id=None)

    assert await command_bundle.command.interaction_check(interaction) is False
    interaction.response.send_message.assert_awaited_once_with(Replies.GUILD_ONLY, ephemeral=True)


@pytest.mark.asyncio
async def test_command_error_is_reported(command_bundle: SimpleNamespace) -> None:
    interaction = _make_interaction()

    await command_bundle.command.cog_app_command_error(interaction, app_commands.AppCommandError("broken"))

    interaction.response.send_message.assert_awaited_once_with(Replies.COMMAND_FAILED, ephemeral=True)


@pytest.mark.asyncio
async def test_reply_http_error_is_logged(command_bundle: SimpleNamespace, caplog: pytest.LogCaptureFixture) -> None:
    interaction = _make_interaction()
    interaction.response.send_message.side_effect = discord.HTTPException(MagicMock(status=500), "fail")

    await command_bundle.command.quit.callback(command_bundle.command, interaction)

    assert any("Failed to reply to interaction" in rec.message for rec in caplog.records)
