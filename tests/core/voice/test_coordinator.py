"""Tests for VoiceCoordinator: ordering, failure isolation, channel moves and teardown."""

import asyncio
import dataclasses

import pytest

from core.voice.coordinator import VoiceCoordinator
from core.voice.errors import (
    ConnectionLostError,
    ConnectionTimeoutError,
    PlaybackStartTimeoutError,
    PlaybackTimeoutError,
    QueueFullError,
    SynthesisFailedError,
)
from models.voice_models import ConnectionStatus, HealthState

GUILD = 1
CHANNEL = 10
OTHER_CHANNEL = 20


@pytest.fixture
def coordinator(transport, synthesizer, timeouts):
    return VoiceCoordinator(transport, synthesizer, timeouts)


async def _drain(coordinator, group_id=GUILD):
    session = coordinator.registry.get(group_id)
    assert session is not None
    await asyncio.wait_for(session.queue.join(), 2.0)


@pytest.mark.asyncio
async def test_plays_in_request_order_without_overlap(coordinator, transport, failures):
    await coordinator.speak(GUILD, CHANNEL, "hello", "echo", failures.for_label("hello"))
    await coordinator.speak(GUILD, CHANNEL, "world", "echo", failures.for_label("world"))
    await _drain(coordinator)

    player = transport.players[0]
    assert player.played == ["hello", "world"]
    assert [e for e in transport.events if e[0] in ("start", "end")] == [
        ("start", "hello"),
        ("end", "hello"),
        ("start", "world"),
        ("end", "world"),
    ]
    assert failures.errors == {}


@pytest.mark.asyncio
async def test_next_clip_is_synthesized_while_previous_plays(make_transport, synthesizer, timeouts, wait_until):
    transport = make_transport(auto_finish=False)
    coordinator = VoiceCoordinator(transport, synthesizer, timeouts)

    await coordinator.speak(GUILD, CHANNEL, "hello", "echo")
    await coordinator.speak(GUILD, CHANNEL, "world", "echo")
    await wait_until(lambda: transport.players and transport.players[0].played == ["hello"])
    await asyncio.sleep(0.01)

    player = transport.players[0]
    assert synthesizer.started == ["hello", "world"]
    assert player.played == ["hello"]

    player.finish()
    await wait_until(lambda: player.played == ["hello", "world"])
    player.finish()
    await _drain(coordinator)


@pytest.mark.asyncio
async def test_order_holds_when_earlier_clip_synthesizes_slower(coordinator, transport, synthesizer):
    synthesizer.delays["hello"] = 0.05
    await coordinator.speak(GUILD, CHANNEL, "hello", "echo")
    await coordinator.speak(GUILD, CHANNEL, "world", "echo")
    await _drain(coordinator)

    assert synthesizer.finished == ["world", "hello"]
    assert transport.players[0].played == ["hello", "world"]


@pytest.mark.asyncio
async def test_request_arriving_with_ready_queues_behind_earlier_waiter(make_transport, synthesizer, timeouts):
    transport = make_transport(auto_ready=False)
    coordinator = VoiceCoordinator(transport, synthesizer, timeouts)

    hello = asyncio.create_task(coordinator.speak(GUILD, CHANNEL, "hello", "echo"))
    await asyncio.sleep(0)
    assert len(transport.connections) == 1

    # READY is set right before "world" first runs, while "hello" is still waiting to resume
    asyncio.get_running_loop().call_soon(transport.connections[0].make_ready)
    world = asyncio.create_task(coordinator.speak(GUILD, CHANNEL, "world", "echo"))
    await asyncio.wait_for(asyncio.gather(hello, world), 1.0)
    await _drain(coordinator)

    assert transport.players[0].played == ["hello", "world"]
    assert coordinator._tails == {}


@pytest.mark.asyncio
async def test_failed_earlier_request_does_not_hold_back_later_one(make_transport, synthesizer, timeouts, failures):
    transport = make_transport(auto_ready=False)
    coordinator = VoiceCoordinator(transport, synthesizer, timeouts)

    first = asyncio.create_task(coordinator.speak(GUILD, CHANNEL, "first", "echo", failures.for_label("first")))
    await asyncio.sleep(0)
    # a move to another channel tears the first session down under the waiting request
    second = asyncio.create_task(coordinator.speak(GUILD, OTHER_CHANNEL, "second", "echo"))
    await asyncio.sleep(0)
    transport.connections[1].make_ready()
    await asyncio.wait_for(asyncio.gather(first, second), 1.0)
    await _drain(coordinator)

    assert isinstance(failures.errors["first"][0], ConnectionLostError)
    assert transport.players[1].played == ["second"]


@pytest.mark.asyncio
async def test_reuses_session_for_same_channel(coordinator, transport):
    await coordinator.speak(GUILD, CHANNEL, "one", "echo")
    await coordinator.speak(GUILD, CHANNEL, "two", "echo")
    await _drain(coordinator)

    assert [e for e in transport.events if e[0] == "join"] == [("join", CHANNEL)]
    assert len(transport.connections) == 1


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_session(coordinator, transport):
    await asyncio.gather(
        coordinator.speak(GUILD, CHANNEL, "a", "echo"),
        coordinator.speak(GUILD, CHANNEL, "b", "echo"),
        coordinator.speak(GUILD, CHANNEL, "c", "echo"),
    )
    await _drain(coordinator)

    assert len(transport.connections) == 1
    assert transport.players[0].played == ["a", "b", "c"]


@pytest.mark.asyncio
async def test_synthesis_failure_does_not_block_next_clip(coordinator, transport, synthesizer, failures):
    synthesizer.failures.add("bad")

    await coordinator.speak(GUILD, CHANNEL, "bad", "echo", failures.for_label("bad"))
    await coordinator.speak(GUILD, CHANNEL, "good", "echo", failures.for_label("good"))
    await _drain(coordinator)

    assert transport.players[0].played == ["good"]
    assert list(failures.errors) == ["bad"]
    assert len(failures.errors["bad"]) == 1
    assert isinstance(failures.errors["bad"][0], SynthesisFailedError)


@pytest.mark.asyncio
async def test_start_timeout_is_reported_and_queue_continues(coordinator, transport, failures, wait_until):
    await coordinator.speak(GUILD, CHANNEL, "warmup", "echo")
    await _drain(coordinator)
    player = transport.players[0]
    player.stuck.add("stuck")

    await coordinator.speak(GUILD, CHANNEL, "stuck", "echo", failures.for_label("stuck"))
    await coordinator.speak(GUILD, CHANNEL, "after", "echo", failures.for_label("after"))
    await _drain(coordinator)

    assert isinstance(failures.errors["stuck"][0], PlaybackStartTimeoutError)
    assert "after" not in failures.errors
    assert player.played == ["warmup", "after"]
    assert True in player.stops


@pytest.mark.asyncio
async def test_playback_timeout_force_stops_player(coordinator, transport, failures):
    await coordinator.speak(GUILD, CHANNEL, "warmup", "echo")
    await _drain(coordinator)
    player = transport.players[0]
    player.hang.add("endless")

    await coordinator.speak(GUILD, CHANNEL, "endless", "echo", failures.for_label("endless"))
    await coordinator.speak(GUILD, CHANNEL, "after", "echo", failures.for_label("after"))
    await _drain(coordinator)

    assert isinstance(failures.errors["endless"][0], PlaybackTimeoutError)
    assert player.played == ["warmup", "endless", "after"]
    assert player.stops == [True]


@pytest.mark.asyncio
async def test_target_change_destroys_old_connection_first(coordinator, transport):
    await coordinator.speak(GUILD, CHANNEL, "first", "echo")
    await _drain(coordinator)
    await coordinator.speak(GUILD, OTHER_CHANNEL, "second", "echo")
    await _drain(coordinator)

    lifecycle = [e for e in transport.events if e[0] in ("join", "destroy")]
    assert lifecycle == [("join", CHANNEL), ("destroy", CHANNEL), ("join", OTHER_CHANNEL)]
    assert coordinator.registry.get(GUILD).target_id == OTHER_CHANNEL
    assert transport.players[1].played == ["second"]


@pytest.mark.asyncio
async def test_ready_timeout_reports_connection_timeout(make_transport, synthesizer, timeouts, failures):
    transport = make_transport(auto_ready=False)
    coordinator = VoiceCoordinator(transport, synthesizer, timeouts)

    await coordinator.speak(GUILD, CHANNEL, "hello", "echo", failures.for_label("hello"))

    assert isinstance(failures.errors["hello"][0], ConnectionTimeoutError)
    assert synthesizer.started == []


@pytest.mark.asyncio
async def test_recovers_when_reconnecting_within_window(coordinator, transport, timeouts, wait_until):
    await coordinator.speak(GUILD, CHANNEL, "hello", "echo")
    await _drain(coordinator)
    session = coordinator.registry.get(GUILD)
    connection = transport.connections[0]

    connection.tracker.transition(ConnectionStatus.DISCONNECTED)
    assert session.health is HealthState.DISCONNECTED

    connection.tracker.transition(ConnectionStatus.CONNECTING)
    await wait_until(lambda: session.health is HealthState.RECOVERING)
    connection.tracker.transition(ConnectionStatus.READY)
    assert session.health is HealthState.CONNECTED

    await asyncio.sleep(timeouts.RECOVERY_WINDOW * 2)
    assert coordinator.registry.get(GUILD) is session
    assert connection.destroy_calls == 0


@pytest.mark.asyncio
async def test_slow_reconnect_survives_once_renegotiation_starts(coordinator, transport, timeouts, wait_until):
    await coordinator.speak(GUILD, CHANNEL, "hello", "echo")
    await _drain(coordinator)
    session = coordinator.registry.get(GUILD)
    connection = transport.connections[0]

    connection.tracker.transition(ConnectionStatus.DISCONNECTED)
    await asyncio.sleep(timeouts.RECOVERY_WINDOW / 2)
    connection.tracker.transition(ConnectionStatus.SIGNALLING)
    await wait_until(lambda: session.health is HealthState.RECOVERING)

    # the new voice server takes far longer than the window to come up
    await asyncio.sleep(timeouts.RECOVERY_WINDOW * 4)
    assert not session.closed
    connection.tracker.transition(ConnectionStatus.READY)

    assert session.health is HealthState.CONNECTED
    assert connection.destroy_calls == 0
    await coordinator.speak(GUILD, CHANNEL, "world", "echo")
    await _drain(coordinator)
    assert transport.players[0].played == ["hello", "world"]


@pytest.mark.asyncio
async def test_dead_connection_is_torn_down(coordinator, transport, timeouts, wait_until):
    await coordinator.speak(GUILD, CHANNEL, "hello", "echo")
    await _drain(coordinator)
    session = coordinator.registry.get(GUILD)
    connection = transport.connections[0]

    connection.tracker.transition(ConnectionStatus.DISCONNECTED)
    await wait_until(lambda: session.closed, timeout=timeouts.RECOVERY_WINDOW * 10)

    assert session.health is HealthState.DEAD
    assert connection.destroyed
    assert GUILD not in coordinator.registry

    # the next request builds a fresh session
    await coordinator.speak(GUILD, CHANNEL, "again", "echo")
    await _drain(coordinator)
    assert len(transport.connections) == 2
    assert transport.players[1].played == ["again"]


@pytest.mark.asyncio
async def test_destroyed_connection_tears_down_session(coordinator, transport):
    await coordinator.speak(GUILD, CHANNEL, "hello", "echo")
    await _drain(coordinator)
    session = coordinator.registry.get(GUILD)

    transport.connections[0].destroy()

    assert session.closed
    assert GUILD not in coordinator.registry


@pytest.mark.asyncio
async def test_leave_stops_in_flight_quietly_and_fails_pending(
    make_transport, synthesizer, timeouts, failures, wait_until
):
    transport = make_transport(auto_finish=False)
    coordinator = VoiceCoordinator(transport, synthesizer, timeouts)

    await coordinator.speak(GUILD, CHANNEL, "a", "echo", failures.for_label("a"))
    await coordinator.speak(GUILD, CHANNEL, "b", "echo", failures.for_label("b"))
    await coordinator.speak(GUILD, CHANNEL, "c", "echo", failures.for_label("c"))
    await wait_until(lambda: transport.players and transport.players[0].played == ["a"])

    assert coordinator.leave(GUILD) is True
    await wait_until(lambda: len(failures.errors) == 2)
    await asyncio.sleep(0.01)

    assert list(failures.errors) == ["b", "c"]
    assert all(isinstance(errors[0], ConnectionLostError) for errors in failures.errors.values())
    assert transport.players[0].played == ["a"]
    assert transport.players[0].stops == [True]
    assert transport.connections[0].destroyed
    assert not coordinator.is_active(GUILD)
    assert coordinator.leave(GUILD) is False


@pytest.mark.asyncio
async def test_lost_connection_fails_in_flight_and_pending_tasks(
    make_transport, synthesizer, timeouts, failures, wait_until
):
    transport = make_transport(auto_finish=False)
    coordinator = VoiceCoordinator(transport, synthesizer, timeouts)

    await coordinator.speak(GUILD, CHANNEL, "a", "echo", failures.for_label("a"))
    await coordinator.speak(GUILD, CHANNEL, "b", "echo", failures.for_label("b"))
    await wait_until(lambda: transport.players and transport.players[0].played == ["a"])

    transport.connections[0].destroy()
    await wait_until(lambda: len(failures.errors) == 2)

    assert list(failures.errors) == ["a", "b"]
    assert all(isinstance(errors[0], ConnectionLostError) for errors in failures.errors.values())


@pytest.mark.asyncio
async def test_full_queue_rejects_new_request(make_transport, synthesizer, timeouts, failures, wait_until):
    transport = make_transport(auto_finish=False)
    coordinator = VoiceCoordinator(transport, synthesizer, dataclasses.replace(timeouts, MAX_PENDING=1))

    await coordinator.speak(GUILD, CHANNEL, "a", "echo", failures.for_label("a"))
    await wait_until(lambda: transport.players and transport.players[0].played == ["a"])
    await coordinator.speak(GUILD, CHANNEL, "b", "echo", failures.for_label("b"))
    await coordinator.speak(GUILD, CHANNEL, "c", "echo", failures.for_label("c"))
    await wait_until(lambda: "c" in failures.errors)

    assert isinstance(failures.errors["c"][0], QueueFullError)
    assert "a" not in failures.errors
    assert "b" not in failures.errors

    transport.players[0].finish()
    await wait_until(lambda: transport.players[0].played == ["a", "b"])
    transport.players[0].finish()
    await _drain(coordinator)


@pytest.mark.asyncio
async def test_close_rejects_further_requests(coordinator, transport, failures):
    await coordinator.speak(GUILD, CHANNEL, "hello", "echo")
    await _drain(coordinator)

    await coordinator.close()
    await coordinator.speak(GUILD, CHANNEL, "late", "echo", failures.for_label("late"))

    assert transport.connections[0].destroyed
    assert len(coordinator.registry) == 0
    assert isinstance(failures.errors["late"][0], ConnectionLostError)


@pytest.mark.asyncio
async def test_failing_notifier_is_logged_and_ignored(coordinator, transport, synthesizer, caplog):
    synthesizer.failures.add("bad")

    async def broken(error):
        raise RuntimeError("notifier broke")

    await coordinator.speak(GUILD, CHANNEL, "bad", "echo", broken)
    await coordinator.speak(GUILD, CHANNEL, "good", "echo")
    await _drain(coordinator)

    assert transport.players[0].played == ["good"]
    assert any("Failure notifier raised" in rec.message for rec in caplog.records)
