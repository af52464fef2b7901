"""Abstract voice transport used by the playback core.

The core never talks to the real-time voice protocol directly. It only needs a
connection that reports lifecycle statuses, a player that reports playback statuses
and accepts an already-encoded AudioResource, and a transport that creates both.
``core.voice.discord_transport`` implements these for discord.py; tests use in-memory
fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from core.voice.status_tracker import StatusTracker
from models.voice_models import ConnectionStatus, PlayerStatus

if TYPE_CHECKING:
    from core.voice.status_tracker import StatusListener
    from models.voice_models import AudioResource

__all__: list[str] = ["AudioPlayer", "SpeechSynthesizer", "VoiceConnection", "VoiceTransport"]


class SpeechSynthesizer(ABC):
    """Turns text into a playable AudioResource."""

    @abstractmethod
    async def synthesize(self, text: str, voice: str) -> AudioResource:
        """Synthesize ``text`` with ``voice``.

        Raises:
            SynthesisFailedError: If the provider fails or returns unusable audio.
        """


class AudioPlayer(ABC):
    """Plays one AudioResource at a time and reports IDLE / PLAYING transitions."""

    def __init__(self, *, name: str = "player") -> None:
        self.tracker: StatusTracker[PlayerStatus] = StatusTracker(PlayerStatus.IDLE, name=name)

    @property
    def status(self) -> PlayerStatus:
        return self.tracker.status

    @abstractmethod
    def play(self, resource: AudioResource) -> None:
        """Start playing ``resource``, replacing whatever is playing."""

    @abstractmethod
    def stop(self, *, force: bool = False) -> None:
        """Stop playback; the player reports IDLE afterwards."""


class VoiceConnection(ABC):
    """A voice connection joined to one target channel of one group (guild).

    The target channel is fixed for the lifetime of the connection.
    """

    def __init__(self, group_id: int, target_id: int) -> None:
        self.group_id: int = group_id
        self.target_id: int = target_id
        self.tracker: StatusTracker[ConnectionStatus] = StatusTracker(
            ConnectionStatus.SIGNALLING, name=f"connection[{group_id}:{target_id}]"
        )

    @property
    def status(self) -> ConnectionStatus:
        return self.tracker.status

    @property
    def destroyed(self) -> bool:
        return self.tracker.status is ConnectionStatus.DESTROYED

    def on_status(self, listener: StatusListener[ConnectionStatus]) -> None:
        self.tracker.add_listener(listener)

    @abstractmethod
    def subscribe(self, player: AudioPlayer) -> None:
        """Route ``player`` output to this connection."""

    @abstractmethod
    def destroy(self) -> None:
        """Release the connection. Must report DESTROYED and never block."""


class VoiceTransport(ABC):
    """Factory for connections and players."""

    @abstractmethod
    def create_player(self, group_id: int) -> AudioPlayer:
        """Create a fresh player for ``group_id``."""

    @abstractmethod
    def join(self, group_id: int, target_id: int) -> VoiceConnection:
        """Start joining ``target_id`` in ``group_id`` and return immediately.

        The returned connection starts in SIGNALLING and moves to READY once the
        underlying transport is connected.
        """
