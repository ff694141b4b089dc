"""Per-session scratch state shared by the watchdog and gatekeeper.

Constructed once by the plugin and passed into each component.
Entries are created lazily on the first event for a session and
removed on session deletion.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator

from .models import SessionState

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Owns SessionState objects keyed by main session id."""

    def __init__(self) -> None:
        self._states: dict[str, SessionState] = {}

    def get(self, session_id: str) -> SessionState | None:
        return self._states.get(session_id)

    def get_or_create(self, session_id: str) -> SessionState:
        state = self._states.get(session_id)
        if state is None:
            state = SessionState()
            self._states[session_id] = state
            logger.debug("Session state created for %s", session_id)
        return state

    def user_goal(self, session_id: str) -> str | None:
        state = self._states.get(session_id)
        return state.user_goal if state else None

    def remove(self, session_id: str) -> bool:
        """Drop state for *session_id*. Safe on unknown ids."""
        removed = self._states.pop(session_id, None) is not None
        if removed:
            logger.debug("Session state removed for %s", session_id)
        return removed

    def clear(self) -> None:
        self._states.clear()

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._states

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._states))
