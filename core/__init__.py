"""Core bot components and services for the voice bot.

This package contains the main bot class, shared data management, the voice
preference and reading-channel stores, the voice playback core and the speech
synthesis adapter.
"""

from core.bot import Bot
from core.channel_config import ReadingChannelStore
from core.preferences import VoicePreferenceStore, normalize_voice
from core.shared_data import SharedData
from core.version import VERSION

__all__: list[str] = [
    "VERSION",
    "Bot",
    "ReadingChannelStore",
    "SharedData",
    "VoicePreferenceStore",
    "normalize_voice",
]
