from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from models.voice_models import HealthState

if TYPE_CHECKING:
    import asyncio

    from core.voice.interface import AudioPlayer, VoiceConnection
    from core.voice.playback_queue import PlaybackQueue

__all__: list[str] = ["Session"]


@dataclass(eq=False)
class Session:
    """Voice state of one guild: its connection, its player and its playback queue.

    The connection and the player are owned exclusively by the session. The target
    channel never changes; following a user to another channel means a new session.

    Attributes:
        group_id (int): Guild identifier.
        target_id (int): Voice channel identifier.
        connection (VoiceConnection): Transport connection joined to ``target_id``.
        player (AudioPlayer): Player subscribed to ``connection``.
        queue (PlaybackQueue | None): Per-session FIFO, attached right after creation.
        health (HealthState): Connection-health state machine.
        closed (bool): Set once teardown starts; a closed session is never reused.
        recovery (asyncio.Task[None] | None): Running grace-window observer, if any.
    """

    group_id: int
    target_id: int
    connection: VoiceConnection
    player: AudioPlayer
    queue: PlaybackQueue | None = None
    health: HealthState = HealthState.CONNECTED
    closed: bool = False
    recovery: asyncio.Task[None] | None = field(default=None, repr=False)
    created_at: float = field(default_factory=time.monotonic)

    def __str__(self) -> str:
        return f"<session guild: {self.group_id}, channel: {self.target_id}, health: {self.health}>"
