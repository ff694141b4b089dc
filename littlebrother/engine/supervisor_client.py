"""Supervisor session manager.

Each monitored (main) session gets one hidden child session in which
the supervisor model is prompted. The manager:

1. Creates that hidden session lazily, with at most one create call in
   flight per main session. Concurrent first queries await the same
   creation task instead of issuing duplicate creates.
2. Prompts the supervisor with the policy's system prompt, every host
   tool disabled, and the payload as the only content part.
3. Bounds each prompt with ``timeout_ms``; a timeout counts as an
   ordinary failure.
4. Retries failed attempts (3 attempts total, 250ms then 500ms apart)
   and then re-raises the most recent error. Fail-open/fail-closed is
   the caller's decision, not ours. A main session deleted while its
   hidden session was being created is not retried; that hidden session
   stays internal until its own deletion.
5. Parses the reply text into a Decision (never raises on bad output).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from .config import DEFAULT_SUPERVISOR_MODEL, ModelRef, SupervisorConfig, parse_model_string
from .decision_parser import parse_decision
from .errors import (
    ConfigError,
    MainSessionDeletedError,
    SupervisorSessionError,
    SupervisorTimeoutError,
)
from .hosts.base import HostClient
from .models import Decision, PolicyType
from .notifications import Notifier
from .prompts import SYSTEM_PROMPTS

logger = logging.getLogger(__name__)

SUPERVISOR_SESSION_TITLE = "LittleBrother Supervisor"

# Used when the host cannot enumerate its tools.
FALLBACK_DISABLED_TOOLS: tuple[str, ...] = (
    "task",
    "bash",
    "interactive_bash",
    "write",
    "edit",
    "webfetch",
)


def extract_text(parts: list[dict[str, Any]] | None) -> str:
    """Concatenate the text parts of a supervisor reply."""
    texts = [
        p["text"] for p in parts or []
        if isinstance(p, dict)
        and p.get("type") == "text"
        and isinstance(p.get("text"), str)
    ]
    return "\n".join(texts).strip()


class SupervisorClient:
    """Talks to the supervisor model through hidden host sessions."""

    def __init__(
        self,
        host: HostClient,
        config: SupervisorConfig,
        notifier: Notifier | None = None,
        *,
        retries: int = 2,
        base_delay: float = 0.25,
    ) -> None:
        self._host = host
        self._config = config
        self._notifier = notifier or Notifier(host)
        self._retries = max(0, retries)
        self._base_delay = base_delay

        self._resolved_model: ModelRef | None = None
        self._disabled_tools: dict[str, bool] | None = None

        # main session id <-> hidden supervisor session id
        self._supervisor_by_main: dict[str, str] = {}
        self._main_by_supervisor: dict[str, str] = {}
        self._creating: dict[str, asyncio.Task[str]] = {}
        # Hidden sessions whose main session was deleted mid-create; still
        # internal until their own deletion event
        self._orphaned: set[str] = set()

    # ── Session mapping ──

    def is_internal_session(self, session_id: str | None) -> bool:
        """True iff *session_id* is one of our hidden supervisor sessions."""
        if not session_id:
            return False
        return (
            session_id in self._main_by_supervisor
            or session_id in self._orphaned
        )

    def supervisor_session_for(self, main_session_id: str) -> str | None:
        return self._supervisor_by_main.get(main_session_id)

    def cleanup_session(self, session_id: str) -> None:
        """Forget the mapping that involves *session_id* on either side.

        Idempotent and safe for unknown ids.
        """
        supervisor_id = self._supervisor_by_main.pop(session_id, None)
        if supervisor_id is not None:
            self._main_by_supervisor.pop(supervisor_id, None)
        main_id = self._main_by_supervisor.pop(session_id, None)
        if main_id is not None:
            self._supervisor_by_main.pop(main_id, None)
        # An in-flight creation for a deleted session must not install
        # a mapping when it finishes.
        self._creating.pop(session_id, None)
        self._orphaned.discard(session_id)
        if supervisor_id or main_id:
            logger.debug(
                "Supervisor mapping removed for %s", session_id,
            )

    async def _ensure_supervisor_session(self, main_session_id: str) -> str:
        existing = self._supervisor_by_main.get(main_session_id)
        if existing:
            return existing

        task = self._creating.get(main_session_id)
        if task is None:
            task = asyncio.ensure_future(
                self._create_supervisor_session(main_session_id)
            )
            self._creating[main_session_id] = task
            task.add_done_callback(
                lambda t, main_id=main_session_id: self._forget_creation(main_id, t)
            )
        # shield: one caller's timeout or cancellation must not cancel
        # the creation other callers are waiting on
        return await asyncio.shield(task)

    async def _create_supervisor_session(self, main_session_id: str) -> str:
        supervisor_id = await self._host.create_session(
            main_session_id, SUPERVISOR_SESSION_TITLE,
        )
        if not supervisor_id:
            raise SupervisorSessionError(
                main_session_id, "session create returned no id",
            )
        # Install the mapping before the pending entry is dropped so no
        # caller can observe "no session and nothing in flight".
        if self._creating.get(main_session_id) is asyncio.current_task():
            self._supervisor_by_main[main_session_id] = supervisor_id
            self._main_by_supervisor[supervisor_id] = main_session_id
            logger.info(
                "Supervisor session %s created for %s",
                supervisor_id, main_session_id,
            )
            return supervisor_id

        self._orphaned.add(supervisor_id)
        logger.debug(
            "Main session %s cleaned up during supervisor session create; "
            "%s kept as internal",
            main_session_id, supervisor_id,
        )
        raise MainSessionDeletedError(main_session_id, supervisor_id)

    def _forget_creation(self, main_session_id: str, task: asyncio.Task[str]) -> None:
        if self._creating.get(main_session_id) is task:
            del self._creating[main_session_id]

    # ── Lazily resolved host facts ──

    async def _get_model(self) -> ModelRef:
        if self._resolved_model is not None:
            return self._resolved_model

        model_string = self._config.model
        if not model_string:
            try:
                model_string = await self._host.get_small_model()
            except Exception as exc:
                logger.debug("Host small_model lookup failed: %s", exc)
                model_string = None

        try:
            resolved = parse_model_string(model_string or DEFAULT_SUPERVISOR_MODEL)
        except ConfigError as exc:
            logger.warning("Host small_model unusable, using default: %s", exc)
            resolved = parse_model_string(DEFAULT_SUPERVISOR_MODEL)

        self._resolved_model = resolved
        logger.info("Supervisor model resolved: %s", resolved)
        return resolved

    async def _get_disabled_tools(self) -> dict[str, bool]:
        if self._disabled_tools is not None:
            return self._disabled_tools
        try:
            ids = await self._host.list_tool_ids()
            self._disabled_tools = {tool_id: False for tool_id in ids}
        except Exception as exc:
            logger.warning(
                "Tool catalog lookup failed, disabling fallback set: %s", exc,
            )
            self._disabled_tools = {
                tool_id: False for tool_id in FALLBACK_DISABLED_TOOLS
            }
        return self._disabled_tools

    # ── Queries ──

    async def query(
        self,
        main_session_id: str,
        policy_type: PolicyType | str,
        payload: str,
        *,
        user_goal: str | None = None,
    ) -> Decision:
        """Ask the supervisor for a verdict on *payload*.

        Raises the most recent underlying error if every attempt fails.
        """
        policy = PolicyType(policy_type)
        system_prompt = SYSTEM_PROMPTS[policy]
        user_content = (
            f"User Goal: {user_goal}\n\nPayload:\n{payload}"
            if user_goal
            else payload
        )

        if self._config.debug:
            await self._notifier.toast(
                f"Supervisor[{policy.value}]: Querying with payload length "
                f"{len(user_content)}",
                "info",
            )

        decision = await self._call_with_retry(
            main_session_id, system_prompt, user_content,
        )

        logger.debug(
            "Supervisor[%s] for %s: %s - %s",
            policy.value, main_session_id, decision.kind.value, decision.reason,
        )
        if self._config.debug:
            await self._notifier.toast(
                f"Supervisor[{policy.value}]: {decision.kind.value} - "
                f"{decision.reason}",
                "info",
            )
        return decision

    async def _call_with_retry(
        self,
        main_session_id: str,
        system_prompt: str,
        user_content: str,
    ) -> Decision:
        max_attempts = self._retries + 1
        attempt = 0

        while True:
            try:
                return await self._call_once(
                    main_session_id, system_prompt, user_content,
                )
            except MainSessionDeletedError:
                raise
            except Exception as exc:
                logger.warning(
                    "Supervisor call failed (attempt %d/%d): %s",
                    attempt + 1, max_attempts, exc,
                )
                if attempt >= self._retries:
                    raise
            await asyncio.sleep(self._base_delay * (2 ** attempt))
            attempt += 1

    async def _call_once(
        self,
        main_session_id: str,
        system_prompt: str,
        user_content: str,
    ) -> Decision:
        supervisor_id = await self._ensure_supervisor_session(main_session_id)
        tools = await self._get_disabled_tools()
        model = await self._get_model()

        timeout_ms = self._config.timeout_ms
        try:
            parts = await asyncio.wait_for(
                self._host.prompt(
                    supervisor_id,
                    model=model,
                    system=system_prompt,
                    tools=tools,
                    text=user_content,
                ),
                timeout=timeout_ms / 1000,
            )
        except asyncio.TimeoutError:
            raise SupervisorTimeoutError(supervisor_id, timeout_ms) from None

        if parts is None:
            raise SupervisorSessionError(
                main_session_id, "supervisor prompt returned no data",
            )
        return parse_decision(extract_text(parts))
