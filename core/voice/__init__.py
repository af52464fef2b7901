"""Voice playback core.

Joins and maintains one voice connection per guild, synthesizes each request out of
band and plays the clips one at a time in request order, bounding every wait.

Modules:
- coordinator: speak / leave entry point
- connection_manager: session creation, health state machine, teardown
- playback_queue: per-session FIFO with a single worker
- playback_driver: plays one clip through the player
- discord_transport: discord.py connections and players
"""

from core.voice.coordinator import VoiceCoordinator
from core.voice.errors import (
    ConnectionLostError,
    ConnectionTimeoutError,
    PlaybackStartTimeoutError,
    PlaybackTimeoutError,
    QueueFullError,
    SynthesisFailedError,
    VoiceError,
)
from core.voice.interface import AudioPlayer, SpeechSynthesizer, VoiceConnection, VoiceTransport
from core.voice.playback_driver import playback_timeout

__all__: list[str] = [
    "AudioPlayer",
    "ConnectionLostError",
    "ConnectionTimeoutError",
    "PlaybackStartTimeoutError",
    "PlaybackTimeoutError",
    "QueueFullError",
    "SpeechSynthesizer",
    "SynthesisFailedError",
    "VoiceConnection",
    "VoiceCoordinator",
    "VoiceError",
    "VoiceTransport",
    "playback_timeout",
]
