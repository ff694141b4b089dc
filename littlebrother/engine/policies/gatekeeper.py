"""Action gatekeeper.

Runs before every tool invocation. Precedence:

1. blocked list   -> GatekeeperBlockError, supervisor never asked
2. allow list     -> allowed, supervisor never asked
3. otherwise      -> supervisor decides (ALLOW / BLOCK)

If the supervisor cannot be reached, fail_open decides whether the
tool runs. Tool names are matched case-insensitively.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from ..config import SupervisorConfig
from ..errors import GatekeeperBlockError
from ..hosts.base import HostClient
from ..models import DecisionKind, PolicyType
from ..notifications import Notifier
from ..session_registry import SessionRegistry
from ..supervisor_client import SupervisorClient

logger = logging.getLogger(__name__)

UNKNOWN_GOAL = "Unknown goal"
UNAVAILABLE_REASON = "Supervisor unavailable and fail-closed policy is active"


class ActionGatekeeper:
    """Allow/block decisions for tool invocations."""

    def __init__(
        self,
        host: HostClient,
        supervisor: SupervisorClient,
        config: SupervisorConfig,
        registry: SessionRegistry,
        notifier: Notifier | None = None,
    ) -> None:
        self._supervisor = supervisor
        self._config = config
        self._registry = registry
        self._notifier = notifier or Notifier(host)

    async def check(self, tool: str, session_id: str, args: dict[str, Any]) -> None:
        """Return normally to allow; raise GatekeeperBlockError to block."""
        gk = self._config.gatekeeper
        if not gk.enabled:
            return
        if self._supervisor.is_internal_session(session_id):
            return

        if gk.is_blocked(tool):
            logger.info("Tool %s blocked by policy in %s", tool, session_id)
            raise GatekeeperBlockError(tool, f'Tool "{tool}" is blocked by policy')

        if gk.is_always_allowed(tool):
            logger.debug("Tool %s allowed by allow list", tool)
            return

        user_goal = self._registry.user_goal(session_id) or UNKNOWN_GOAL
        payload = json.dumps({"tool": tool, "args": args}, default=str)

        logger.debug("Gatekeeper check for %s in %s", tool, session_id)
        try:
            decision = await self._supervisor.query(
                session_id, PolicyType.GATEKEEPER, payload, user_goal=user_goal,
            )
        except Exception as exc:
            logger.warning(
                "Gatekeeper supervisor check failed for %s: %s", tool, exc,
            )
            await self._on_supervisor_failure(tool)
            return

        if decision.kind is DecisionKind.BLOCK:
            logger.warning(
                "Gatekeeper blocked %s in %s: %s", tool, session_id, decision.reason,
            )
            await self._notifier.toast(
                f"Blocked {tool}: {decision.reason}", "warning",
            )
            raise GatekeeperBlockError(tool, decision.reason)

        logger.debug("Gatekeeper allowed %s: %s", tool, decision.reason)

    async def _on_supervisor_failure(self, tool: str) -> None:
        if self._config.fail_open:
            await self._notifier.toast(
                f"Supervisor unavailable - allowing {tool} (fail-open)", "warning",
            )
            return
        await self._notifier.toast(
            f"Supervisor unavailable - blocking {tool} (fail-closed)", "error",
        )
        raise GatekeeperBlockError(tool, UNAVAILABLE_REASON)
