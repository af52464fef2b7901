"""Tests for SessionRegistry."""

from types import SimpleNamespace

import pytest

from core.voice.registry import SessionRegistry


def _session(group_id, *, closed=False):
    return SimpleNamespace(group_id=group_id, closed=closed)


def test_add_get_and_contains():
    registry = SessionRegistry()
    session = _session(1)
    registry.add(session)

    assert 1 in registry
    assert registry.get(1) is session
    assert registry.get(2) is None
    assert len(registry) == 1
    assert registry.groups() == [1]


def test_add_rejects_second_live_session():
    registry = SessionRegistry()
    registry.add(_session(1))
    with pytest.raises(ValueError, match="already exists"):
        registry.add(_session(1))


def test_add_replaces_closed_session():
    registry = SessionRegistry()
    registry.add(_session(1, closed=True))
    fresh = _session(1)
    registry.add(fresh)
    assert registry.get(1) is fresh


def test_remove_is_identity_checked():
    registry = SessionRegistry()
    old = _session(1, closed=True)
    new = _session(1)
    registry.add(old)
    registry.add(new)

    assert registry.remove(1, old) is False
    assert registry.get(1) is new
    assert registry.remove(1, new) is True
    assert 1 not in registry


def test_close_all_applies_teardown_and_clears():
    registry = SessionRegistry()
    sessions = [_session(1), _session(2)]
    for session in sessions:
        registry.add(session)
    torn_down = []

    assert registry.close_all(torn_down.append) == 2
    assert torn_down == sessions
    assert len(registry) == 0
