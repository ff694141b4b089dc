"""Abstract base for agent hosts.

A host is the agent runtime being supervised (opencode, or a fake in
tests). The engine only needs a narrow slice of it: child sessions,
non-interactive prompts, abort, the tool catalog, and best-effort
notification and log sinks.
"""
from __future__ import annotations

import abc
from typing import Any

from ..config import ModelRef


class HostClient(abc.ABC):
    """Host interface consumed by the supervisor engine.

    Implementations:
    - OpenCodeHostClient: HTTP API of a running ``opencode serve``
    """

    @abc.abstractmethod
    async def create_session(self, parent_id: str, title: str) -> str | None:
        """Create a child session under *parent_id*. Returns the new id."""

    @abc.abstractmethod
    async def prompt(
        self,
        session_id: str,
        *,
        model: ModelRef,
        system: str,
        tools: dict[str, bool],
        text: str,
    ) -> list[dict[str, Any]] | None:
        """Send a non-interactive prompt and return the reply parts.

        Each part is a dict with at least ``type``; text parts carry
        ``text``. Returns None if the host produced no reply data.
        """

    @abc.abstractmethod
    async def inject_message(self, session_id: str, text: str) -> None:
        """Append a message to *session_id* without triggering a reply."""

    @abc.abstractmethod
    async def abort_session(self, session_id: str) -> None:
        """Request abrupt termination of *session_id*."""

    @abc.abstractmethod
    async def list_tool_ids(self) -> list[str]:
        """Return identifiers of all tools the host currently exposes."""

    async def get_small_model(self) -> str | None:
        """Return the host's configured lightweight model, if any."""
        return None

    @abc.abstractmethod
    async def show_toast(self, message: str, variant: str = "warning") -> None:
        """Show a user-visible notification."""

    @abc.abstractmethod
    async def log(
        self,
        level: str,
        message: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Write to the host's log sink."""

    async def close(self) -> None:
        """Release resources. Default no-op."""
        return None
