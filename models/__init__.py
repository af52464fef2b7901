"""Data models for the voice bot.

This package contains dataclass and enum definitions for configuration, voice
connections and playback, speech requests, and the regular expression patterns used
for chat text.
"""

from __future__ import annotations

from models.config_models import Config, Secrets, VoiceTimeouts
from models.re_models import (
    DIRECT_SPEAK_PREFIX,
    IEUNG_RUN_PATTERN,
    LINK_PATTERN,
    NIEUN_RUN_PATTERN,
    REPEAT_PATTERN,
    SERVER_URL_PATTERN,
)
from models.voice_models import (
    ALLOWED_VOICES,
    DEFAULT_VOICE,
    AudioResource,
    ConnectionStatus,
    HealthState,
    PlayerStatus,
    SpeechRequest,
    StreamType,
)

__all__: list[str] = [
    "ALLOWED_VOICES",
    "DEFAULT_VOICE",
    "DIRECT_SPEAK_PREFIX",
    "IEUNG_RUN_PATTERN",
    "LINK_PATTERN",
    "NIEUN_RUN_PATTERN",
    "REPEAT_PATTERN",
    "SERVER_URL_PATTERN",
    "AudioResource",
    "Config",
    "ConnectionStatus",
    "HealthState",
    "PlayerStatus",
    "Secrets",
    "SpeechRequest",
    "StreamType",
    "VoiceTimeouts",
]
