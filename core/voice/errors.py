"""Failure taxonomy of the voice playback core.

Every error except ConnectionLostError is scoped to a single speak request and is
reported once through that request's failure notifier. ConnectionLostError is scoped
to a whole session: it triggers teardown, and each request still pending on the
torn-down session is failed with it.
"""

from __future__ import annotations

__all__: list[str] = [
    "ConnectionLostError",
    "ConnectionTimeoutError",
    "PlaybackStartTimeoutError",
    "PlaybackTimeoutError",
    "QueueFullError",
    "SynthesisFailedError",
    "VoiceError",
]


class VoiceError(Exception):
    """Base class for voice playback failures."""


class ConnectionTimeoutError(VoiceError):
    """The voice connection did not become ready in time."""


class ConnectionLostError(VoiceError):
    """The session was torn down (explicit leave, destroyed, or unrecoverable disconnect)."""


class SynthesisFailedError(VoiceError):
    """The speech provider failed to return usable audio."""


class PlaybackStartTimeoutError(VoiceError):
    """The player did not start playing the clip in time."""


class PlaybackTimeoutError(VoiceError):
    """The player did not finish the clip within its length-derived bound."""


class QueueFullError(VoiceError):
    """The guild's playback queue is at capacity and rejected the request."""
