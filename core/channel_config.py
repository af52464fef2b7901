from __future__ import annotations

from typing import TYPE_CHECKING

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging

__all__: list[str] = ["ReadingChannelStore"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class ReadingChannelStore:
    """The text channel whose messages are read aloud, per guild.

    Kept in memory only: after a restart ``/voiceroom`` has to be issued again.
    """

    def __init__(self) -> None:
        self._channels: dict[int, int] = {}

    def set(self, guild_id: int, channel_id: int) -> None:
        previous: int | None = self._channels.get(guild_id)
        self._channels[guild_id] = channel_id
        logger.info("Guild %d reading channel: %s -> %d", guild_id, previous, channel_id)

    def get(self, guild_id: int) -> int | None:
        return self._channels.get(guild_id)

    def is_reading_channel(self, guild_id: int, channel_id: int) -> bool:
        return self._channels.get(guild_id) == channel_id
