"""Configuration data models for the voice bot.

Each dataclass mirrors one section of the INI file; attribute names are the INI keys.
Secrets (tokens, API keys) are never read from the INI file; they come from the environment.
"""

from __future__ import annotations

from dataclasses import dataclass, field

__all__: list[str] = [
    "TTS",
    "Config",
    "Discord",
    "General",
    "Preferences",
    "Secrets",
    "VoiceTimeouts",
]


@dataclass
class General:
    DEBUG: bool = False
    VERSION: str = ""
    SCRIPT_NAME: str = ""
    LOG_FILE: str = ""


@dataclass
class Discord:
    SELF_DEAF: bool = False
    COMMAND_PREFIX: str = "!"


@dataclass
class TTS:
    SERVER: str = "https://api.openai.com/v1"
    MODEL: str = "gpt-4o-mini-tts"
    FORMAT: str = "opus"
    DEFAULT_VOICE: str = "echo"
    TIMEOUT: float = 30.0


@dataclass
class VoiceTimeouts:
    """Bounds for every suspension point of the playback core, in seconds."""

    READY_TIMEOUT: float = 10.0
    RECOVERY_WINDOW: float = 5.0
    START_TIMEOUT: float = 5.0
    MIN_PLAYBACK: float = 10.0
    MAX_PLAYBACK: float = 120.0
    PLAYBACK_PER_CHAR: float = 0.6
    # 0 means the per-guild queue is unbounded
    MAX_PENDING: int = 0
    MONITOR_INTERVAL: float = 1.0


@dataclass
class Preferences:
    VOICE_FILE: str = "voice.txt"


@dataclass
class Secrets:
    DISCORD_TOKEN: str = ""
    OPENAI_API_KEY: str = ""
    CLIENT_ID: str = ""
    GUILD_ID: str = ""


@dataclass
class Config:
    GENERAL: General = field(default_factory=General)
    DISCORD: Discord = field(default_factory=Discord)
    TTS: TTS = field(default_factory=TTS)
    VOICE: VoiceTimeouts = field(default_factory=VoiceTimeouts)
    PREFERENCES: Preferences = field(default_factory=Preferences)
    SECRETS: Secrets = field(default_factory=Secrets)
