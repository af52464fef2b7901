from __future__ import annotations

from typing import TYPE_CHECKING

from utils.logger_utils import LoggerUtils

if TYPE_CHECKING:
    import logging
    from collections.abc import Callable, Iterator

    from core.voice.session import Session

__all__: list[str] = ["SessionRegistry"]

logger: logging.Logger = LoggerUtils.get_logger(__name__)


class SessionRegistry:
    """Guild -> Session map; at most one live Session per guild.

    Only touched from the event loop thread, so plain dict operations are atomic with
    respect to every other coroutine.
    """

    def __init__(self) -> None:
        self._sessions: dict[int, Session] = {}

    def __contains__(self, group_id: object) -> bool:
        return group_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def get(self, group_id: int) -> Session | None:
        return self._sessions.get(group_id)

    def groups(self) -> list[int]:
        return list(self._sessions)

    def add(self, session: Session) -> None:
        """Register a new session.

        Raises:
            ValueError: If a live session already exists for the guild.
        """
        existing: Session | None = self._sessions.get(session.group_id)
        if existing is not None and not existing.closed:
            msg = f"A session already exists for guild {session.group_id}"
            raise ValueError(msg)
        self._sessions[session.group_id] = session
        logger.debug("Registered %s (%d active)", session, len(self._sessions))

    def remove(self, group_id: int, session: Session) -> bool:
        """Unregister ``session`` if it is still the one mapped to ``group_id``.

        A stale teardown must not evict a newer session of the same guild.

        Returns:
            bool: True if the mapping was removed.
        """
        if self._sessions.get(group_id) is not session:
            return False
        del self._sessions[group_id]
        logger.debug("Unregistered %s (%d active)", session, len(self._sessions))
        return True

    def close_all(self, teardown: Callable[[Session], None]) -> int:
        """Apply ``teardown`` to every registered session and clear the registry.

        Returns:
            int: Number of sessions that were registered.
        """
        sessions: list[Session] = list(self._sessions.values())
        for session in sessions:
            teardown(session)
        self._sessions.clear()
        if sessions:
            logger.info("Closed %d voice session(s)", len(sessions))
        return len(sessions)
