"""Data models for voice connections, playback and speech synthesis.

This module defines:
- ConnectionStatus / PlayerStatus: lifecycle states reported by the voice transport.
- HealthState: the connection-health state machine kept per session.
- StreamType / AudioResource: a synthesized clip together with its decoding hint.
- SpeechRequest: the request body sent to the speech synthesis provider.
- The closed set of selectable voices.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from dataclasses_json import DataClassJsonMixin

__all__: list[str] = [
    "ALLOWED_VOICES",
    "DEFAULT_VOICE",
    "AudioResource",
    "ConnectionStatus",
    "HealthState",
    "PlayerStatus",
    "SpeechRequest",
    "StreamType",
]

ALLOWED_VOICES: Final[tuple[str, ...]] = (
    "alloy",
    "echo",
    "fable",
    "onyx",
    "nova",
    "shimmer",
    "coral",
    "verse",
    "ballad",
    "ash",
    "sage",
    "marin",
    "cedar",
)

DEFAULT_VOICE: Final[str] = "echo"


class ConnectionStatus(StrEnum):
    """Lifecycle states of a voice connection."""

    SIGNALLING = "signalling"
    CONNECTING = "connecting"
    READY = "ready"
    DISCONNECTED = "disconnected"
    DESTROYED = "destroyed"


class PlayerStatus(StrEnum):
    """Lifecycle states of an audio player."""

    IDLE = "idle"
    BUFFERING = "buffering"
    PLAYING = "playing"
    PAUSED = "paused"


class HealthState(StrEnum):
    """Connection health as seen by the lifecycle manager.

    CONNECTED -> DISCONNECTED -> RECOVERING -> CONNECTED, or DISCONNECTED -> DEAD.
    DEAD is terminal and always followed by teardown.
    """

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECOVERING = "recovering"
    DEAD = "dead"


class StreamType(StrEnum):
    """Decoding hint derived from probing the synthesized byte stream."""

    OGG_OPUS = "ogg/opus"
    WEBM_OPUS = "webm/opus"
    ARBITRARY = "arbitrary"

    @property
    def is_opus(self) -> bool:
        """Whether the stream already carries Opus packets that can be passed through."""
        return self in (StreamType.OGG_OPUS, StreamType.WEBM_OPUS)


@dataclass
class AudioResource:
    """A playable clip bound to its bytes and decoding hint.

    Attributes:
        data (bytes): The encoded audio as returned by the provider.
        stream_type (StreamType): Container/codec detected by probing the header.
        text (str): The text the clip was synthesized from (for logging only).
    """

    data: bytes
    stream_type: StreamType = StreamType.ARBITRARY
    text: str = ""

    def open(self) -> io.BytesIO:
        """Return a fresh readable stream over the clip."""
        return io.BytesIO(self.data)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} type: {self.stream_type}, bytes: {len(self.data)}, text: {self.text!r}>"


@dataclass
class SpeechRequest(DataClassJsonMixin):
    """Body of a speech synthesis request."""

    model: str
    voice: str
    input: str
    response_format: str = "opus"
    instructions: str | None = field(default=None)

    def to_payload(self) -> dict[str, str]:
        """Serialize to a JSON-ready dict, omitting unset optional fields."""
        return {key: value for key, value in self.to_dict().items() if value is not None}
