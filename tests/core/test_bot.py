"""Unit tests for core.bot and core.shared_data."""

from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.bot import Bot
from core.components import ChatEventsManager, ComponentBase, SlashCommandManager
from core.shared_data import SharedData
from models.config_models import Config


def test_component_priority_order() -> None:
    components = [d.component for d in ComponentBase.component_priority_list()]
    assert components.index(ChatEventsManager) < components.index(SlashCommandManager)


def test_component_requires_shared_data() -> None:
    with pytest.raises(RuntimeError, match="Shared data"):
        ChatEventsManager(SimpleNamespace(shared_data=None))


@pytest.mark.asyncio
async def test_setup_hook_initializes_and_attaches_in_priority_order() -> None:
    attached: list[str] = []
    fake_bot = MagicMock()
    fake_bot.shared_data.async_init = AsyncMock()
    fake_bot.attach_component = AsyncMock(side_effect=lambda component: attached.append(type(component).__name__))
    fake_bot.register_commands = AsyncMock()

    await Bot.setup_hook(fake_bot)

    fake_bot.shared_data.async_init.assert_awaited_once_with(fake_bot)
    assert attached.index("ChatEventsManager") < attached.index("SlashCommandManager")
    fake_bot.register_commands.assert_awaited_once()


@pytest.mark.asyncio
async def test_register_commands_syncs_to_configured_guild() -> None:
    fake_bot = MagicMock()
    fake_bot.guild_object = SimpleNamespace(id=456)
    fake_bot.tree.sync = AsyncMock(return_value=[object(), object()])

    await Bot.register_commands(fake_bot)

    fake_bot.tree.copy_global_to.assert_called_once_with(guild=fake_bot.guild_object)
    fake_bot.tree.sync.assert_awaited_once_with(guild=fake_bot.guild_object)


@pytest.mark.asyncio
async def test_on_error_logs_exception(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.ERROR)
    try:
        raise ValueError("boom")
    except ValueError:
        await Bot.on_error(MagicMock(), "on_message")

    assert any("Event error in 'on_message'" in rec.message for rec in caplog.records)


@pytest.mark.asyncio
async def test_shared_data_close_before_init_is_safe() -> None:
    shared = SharedData(Config())
    await shared.close()


@pytest.mark.asyncio
async def test_shared_data_builds_services(tmp_path) -> None:
    config = Config()
    config.PREFERENCES.VOICE_FILE = str(tmp_path / "voice.txt")
    config.SECRETS.OPENAI_API_KEY = "sk-test"
    shared = SharedData(config)

    await shared.async_init(MagicMock())

    assert len(shared.preferences) == 0
    assert shared.channels.get(1) is None
    assert shared.coordinator.is_active(1) is False
    await shared.close()
