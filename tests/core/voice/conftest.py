"""In-memory voice transport used by the playback core tests."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from core.voice.errors import SynthesisFailedError
from core.voice.interface import AudioPlayer, SpeechSynthesizer, VoiceConnection, VoiceTransport
from models.config_models import VoiceTimeouts
from models.voice_models import AudioResource, ConnectionStatus, PlayerStatus, StreamType


class FakePlayer(AudioPlayer):
    """Plays clips for ``duration`` seconds; ``hang`` texts never finish, ``stuck`` texts never start."""

    def __init__(self, events: list[tuple[str, Any]], *, duration: float = 0.01, auto_finish: bool = True) -> None:
        super().__init__(name="fake-player")
        self.events: list[tuple[str, Any]] = events
        self.duration: float = duration
        self.auto_finish: bool = auto_finish
        self.hang: set[str] = set()
        self.stuck: set[str] = set()
        self.played: list[str] = []
        self.stops: list[bool] = []
        self.current: str | None = None
        self._handle: asyncio.TimerHandle | None = None

    def play(self, resource: AudioResource) -> None:
        assert self.status is not PlayerStatus.PLAYING, "overlapping playback"
        self.tracker.transition(PlayerStatus.BUFFERING)
        if resource.text in self.stuck:
            return
        self.current = resource.text
        self.played.append(resource.text)
        self.events.append(("start", resource.text))
        self.tracker.transition(PlayerStatus.PLAYING)
        if self.auto_finish and resource.text not in self.hang:
            self._handle = asyncio.get_running_loop().call_later(self.duration, self.finish)

    def finish(self) -> None:
        if self.current is not None:
            self.events.append(("end", self.current))
            self.current = None
        self.tracker.transition(PlayerStatus.IDLE)

    def stop(self, *, force: bool = False) -> None:
        self.stops.append(force)
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self.finish()


class FakeConnection(VoiceConnection):
    def __init__(self, group_id: int, target_id: int, events: list[tuple[str, Any]]) -> None:
        super().__init__(group_id, target_id)
        self.events: list[tuple[str, Any]] = events
        self.player: AudioPlayer | None = None
        self.destroy_calls: int = 0

    def subscribe(self, player: AudioPlayer) -> None:
        self.player = player

    def make_ready(self) -> None:
        if self.destroyed:
            return
        self.tracker.transition(ConnectionStatus.CONNECTING)
        self.tracker.transition(ConnectionStatus.READY)

    def destroy(self) -> None:
        self.destroy_calls += 1
        if self.destroyed:
            return
        self.events.append(("destroy", self.target_id))
        self.tracker.transition(ConnectionStatus.DESTROYED)


class FakeTransport(VoiceTransport):
    def __init__(self, *, auto_ready: bool = True, duration: float = 0.01, auto_finish: bool = True) -> None:
        self.auto_ready: bool = auto_ready
        self.duration: float = duration
        self.auto_finish: bool = auto_finish
        self.events: list[tuple[str, Any]] = []
        self.connections: list[FakeConnection] = []
        self.players: list[FakePlayer] = []

    def create_player(self, group_id: int) -> FakePlayer:
        player = FakePlayer(self.events, duration=self.duration, auto_finish=self.auto_finish)
        self.players.append(player)
        return player

    def join(self, group_id: int, target_id: int) -> FakeConnection:
        self.events.append(("join", target_id))
        connection = FakeConnection(group_id, target_id, self.events)
        self.connections.append(connection)
        if self.auto_ready:
            asyncio.get_running_loop().call_soon(connection.make_ready)
        return connection


class FakeSynthesizer(SpeechSynthesizer):
    """Synthesizes after ``delay`` seconds, or ``delays[text]`` when set for that text."""

    def __init__(self, *, delay: float = 0.0) -> None:
        self.delay: float = delay
        self.delays: dict[str, float] = {}
        self.failures: set[str] = set()
        self.started: list[str] = []
        self.finished: list[str] = []

    async def synthesize(self, text: str, voice: str) -> AudioResource:
        self.started.append(text)
        await asyncio.sleep(self.delays.get(text, self.delay))
        self.finished.append(text)
        if text in self.failures:
            msg = f"cannot synthesize {text!r}"
            raise SynthesisFailedError(msg)
        return AudioResource(data=text.encode(), stream_type=StreamType.OGG_OPUS, text=text)


class FailureRecorder:
    """Failure notifier that remembers every error per label."""

    def __init__(self) -> None:
        self.errors: dict[str, list[Exception]] = {}

    def for_label(self, label: str):
        async def _notify(error: Exception) -> None:
            self.errors.setdefault(label, []).append(error)

        return _notify


@pytest.fixture
def timeouts() -> VoiceTimeouts:
    return VoiceTimeouts(
        READY_TIMEOUT=0.2,
        RECOVERY_WINDOW=0.05,
        START_TIMEOUT=0.05,
        MIN_PLAYBACK=0.2,
        MAX_PLAYBACK=0.5,
        PLAYBACK_PER_CHAR=0.01,
        MAX_PENDING=0,
        MONITOR_INTERVAL=0.01,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def synthesizer() -> FakeSynthesizer:
    return FakeSynthesizer()


@pytest.fixture
def failures() -> FailureRecorder:
    return FailureRecorder()


async def _wait_until(predicate, timeout: float = 1.0) -> None:
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.005)


@pytest.fixture
def wait_until():
    """Poll ``predicate`` on the event loop until it holds, failing after ``timeout``."""
    return _wait_until


@pytest.fixture
def make_transport():
    """Factory for transports with non-default behaviour."""
    return FakeTransport
