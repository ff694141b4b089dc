"""Stream watchdog.

Buffers streamed assistant text per session and periodically asks the
supervisor whether the agent is looping, hallucinating, stuck or doing
something dangerous. An ABORT verdict (or, fail-closed, an unreachable
supervisor) latches the session into the terminal ABORTING phase and
asks the host to abort it.

Checks run as background tasks so the host's event callback returns
immediately. At most one check is in flight per session; a trigger
that arrives while one is outstanding is dropped, not queued. The
buffer keeps accumulating either way. Cleaning up a session cancels
its in-flight check, and a verdict that arrives for a cleaned-up
session is discarded.
"""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from ..config import SupervisorConfig
from ..lifecycle import transition
from ..models import DecisionKind, PolicyType, SessionState, WatchdogPhase
from ..notifications import PRODUCT_PREFIX, Notifier
from ..session_registry import SessionRegistry
from ..supervisor_client import SupervisorClient
from ..hosts.base import HostClient

logger = logging.getLogger(__name__)

# Fragments sent per check; bounds context cost regardless of buffer size
CHECK_WINDOW_FRAGMENTS = 50
FAILURE_TOAST_INTERVAL_SECONDS = 30.0
USER_GOAL_MAX_CHARS = 500


class StreamWatchdog:
    """Per-session streaming text monitor."""

    def __init__(
        self,
        host: HostClient,
        supervisor: SupervisorClient,
        config: SupervisorConfig,
        registry: SessionRegistry,
        notifier: Notifier | None = None,
    ) -> None:
        self._host = host
        self._supervisor = supervisor
        self._config = config
        self._registry = registry
        self._notifier = notifier or Notifier(host)
        self._pending_checks: dict[str, asyncio.Task[None]] = {}
        # Checks cancelled by cleanup, awaited by drain() until they unwind
        self._cancelled_checks: set[asyncio.Task[None]] = set()

    # ── Event entry points ──

    def on_text_delta(self, session_id: str, delta: str) -> asyncio.Task[None] | None:
        """Buffer a streamed text fragment; maybe start a check.

        Returns the check task when one was started. All state updates
        happen synchronously here, before any await.
        """
        if not self._config.watchdog.enabled:
            return None
        if not delta or self._supervisor.is_internal_session(session_id):
            return None

        state = self._registry.get_or_create(session_id)
        if state.aborting:
            return None
        # Our own injected messages stream back through the host
        if PRODUCT_PREFIX in delta:
            return None

        state.token_buffer.append(delta)
        state.total_chars += len(delta)
        if state.phase is WatchdogPhase.IDLE:
            transition(state, WatchdogPhase.BUFFERING)

        wd = self._config.watchdog
        if state.total_chars - state.last_check_token_count < wd.check_interval_chars:
            return None

        state.last_check_token_count = state.total_chars
        self._evict(state, wd.max_buffer_chars)

        if session_id in self._pending_checks:
            logger.debug("Watchdog check already in flight for %s", session_id)
            return None

        transition(state, WatchdogPhase.CHECKING)
        recent = "".join(state.token_buffer[-CHECK_WINDOW_FRAGMENTS:])
        task = asyncio.ensure_future(self._check(session_id, state, recent))
        self._pending_checks[session_id] = task
        task.add_done_callback(
            lambda t, sid=session_id: self._forget_check(sid, t)
        )
        return task

    def on_chat_message(self, session_id: str, parts: list[dict[str, Any]] | None) -> None:
        """Capture the user's goal from the first outbound chat message."""
        if self._supervisor.is_internal_session(session_id):
            return
        texts = [
            p["text"] for p in parts or []
            if isinstance(p, dict) and p.get("type") == "text" and p.get("text")
        ]
        if not texts:
            return
        state = self._registry.get_or_create(session_id)
        if state.user_goal is not None:
            return
        state.user_goal = " ".join(texts)[:USER_GOAL_MAX_CHARS]
        logger.debug("User goal captured for %s", session_id)

    def cleanup(self, session_id: str) -> None:
        """Forget state and cancel any in-flight check. Safe on unknown ids."""
        self._registry.remove(session_id)
        task = self._pending_checks.pop(session_id, None)
        if task is not None and not task.done():
            task.cancel()
            self._cancelled_checks.add(task)
            task.add_done_callback(self._cancelled_checks.discard)
            logger.debug("Cancelled watchdog check for %s", session_id)

    def has_pending_check(self, session_id: str) -> bool:
        return session_id in self._pending_checks

    async def drain(self) -> None:
        """Wait for every in-flight or cancelled check to settle."""
        while self._pending_checks or self._cancelled_checks:
            await asyncio.gather(
                *self._pending_checks.values(), *self._cancelled_checks,
                return_exceptions=True,
            )

    # ── Internals ──

    @staticmethod
    def _evict(state: SessionState, max_chars: int) -> None:
        """Drop oldest text until the buffer fits (FIFO).

        Whole fragments go first; the oldest surviving fragment loses its
        head, so a single oversized delta keeps its newest characters.
        """
        excess = state.buffered_chars - max_chars
        while excess > 0 and state.token_buffer:
            oldest = state.token_buffer[0]
            if len(oldest) <= excess:
                state.token_buffer.pop(0)
                excess -= len(oldest)
            else:
                state.token_buffer[0] = oldest[excess:]
                excess = 0

    def _is_stale(self, session_id: str, state: SessionState) -> bool:
        # Session cleaned up (and possibly recreated) while the check ran
        if self._registry.get(session_id) is state:
            return False
        logger.debug("Dropping watchdog verdict for cleaned-up %s", session_id)
        return True

    def _forget_check(self, session_id: str, task: asyncio.Task[None]) -> None:
        if self._pending_checks.get(session_id) is task:
            del self._pending_checks[session_id]

    async def _check(self, session_id: str, state: SessionState, recent: str) -> None:
        logger.debug(
            "Watchdog check for %s (%d chars)", session_id, len(recent),
        )
        if self._config.debug:
            await self._notifier.toast("Watchdog: checking response...", "info")

        try:
            decision = await self._supervisor.query(
                session_id, PolicyType.WATCHDOG, recent,
                user_goal=state.user_goal,
            )
        except Exception as exc:
            if self._is_stale(session_id, state):
                return
            logger.warning(
                "Watchdog supervisor check failed for %s: %s", session_id, exc,
            )
            await self._on_supervisor_failure(session_id, state)
            return

        if self._is_stale(session_id, state):
            return
        if decision.kind is DecisionKind.ABORT:
            transition(state, WatchdogPhase.ABORTING)
            logger.warning(
                "Watchdog triggered abort for %s: %s", session_id, decision.reason,
            )
            await self._notifier.inject(
                session_id, f"Session aborted: {decision.reason}", "error",
            )
            await self._notifier.toast(f"Aborted: {decision.reason}", "error")
            await self._abort(session_id)
            return

        if decision.kind is not DecisionKind.OK:
            logger.debug(
                "Watchdog got %s for %s, treating as OK",
                decision.kind.value, session_id,
            )
        transition(state, WatchdogPhase.BUFFERING)

    async def _on_supervisor_failure(self, session_id: str, state: SessionState) -> None:
        if not self._config.fail_open:
            transition(state, WatchdogPhase.ABORTING)
            await self._notifier.inject(
                session_id,
                "Supervisor unavailable (fail-closed) - aborting session",
                "error",
            )
            await self._notifier.toast(
                "Supervisor unavailable - aborting session (fail-closed)", "error",
            )
            await self._abort(session_id)
            return

        transition(state, WatchdogPhase.BUFFERING)
        if self._should_show_failure_toast(state):
            await self._notifier.toast(
                "Supervisor unavailable - watchdog skipped (fail-open)", "warning",
            )

    @staticmethod
    def _should_show_failure_toast(state: SessionState) -> bool:
        now = time.monotonic()
        last = state.last_failure_toast_at
        if last is not None and now - last < FAILURE_TOAST_INTERVAL_SECONDS:
            return False
        state.last_failure_toast_at = now
        return True

    async def _abort(self, session_id: str) -> None:
        # Best effort: logged, not retried
        try:
            await self._host.abort_session(session_id)
        except Exception as exc:
            logger.error("Failed to abort session %s: %s", session_id, exc)
