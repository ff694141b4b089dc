"""Host plugin: wires host events to the supervisor policies.

Owns the session registry, the supervisor session manager and the
enabled policies for the lifetime of the plugin. Raw host payloads are
resolved into typed events here; events from our own hidden supervisor
sessions are dropped before any policy sees them.

A failure inside one policy is logged and contained. The exception is
GatekeeperBlockError, which is how the host learns a tool was blocked.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from littlebrother.adapters.events import (
    ChatMessage,
    HostEvent,
    SessionDeleted,
    TextDelta,
    ToolExecuteAfter,
    ToolExecuteBefore,
    chat_message_event,
    dict_to_event,
    tool_after_event,
    tool_before_event,
)
from littlebrother.adapters.log_handler import (
    HostLogHandler,
    install_host_logging,
    uninstall_host_logging,
)
from littlebrother.engine.config import SupervisorConfig
from littlebrother.engine.errors import GatekeeperBlockError
from littlebrother.engine.hosts.base import HostClient
from littlebrother.engine.notifications import Notifier
from littlebrother.engine.policies.gatekeeper import ActionGatekeeper
from littlebrother.engine.policies.sanitizer import ResultSanitizer
from littlebrother.engine.policies.watchdog import StreamWatchdog
from littlebrother.engine.session_registry import SessionRegistry
from littlebrother.engine.supervisor_client import SupervisorClient
from littlebrother.engine.yaml_config import load_config

logger = logging.getLogger(__name__)


class LittleBrotherPlugin:
    """Dispatcher between host callbacks and the three policies."""

    def __init__(
        self,
        host: HostClient,
        config: SupervisorConfig,
        *,
        supervisor: SupervisorClient | None = None,
        log_handler: HostLogHandler | None = None,
    ) -> None:
        self.host = host
        self.config = config
        self.registry = SessionRegistry()
        self.notifier = Notifier(host)
        self.supervisor = supervisor or SupervisorClient(host, config, self.notifier)
        self._log_handler = log_handler

        self.watchdog: StreamWatchdog | None = (
            StreamWatchdog(host, self.supervisor, config, self.registry, self.notifier)
            if config.watchdog.enabled else None
        )
        self.gatekeeper: ActionGatekeeper | None = (
            ActionGatekeeper(host, self.supervisor, config, self.registry, self.notifier)
            if config.gatekeeper.enabled else None
        )
        self.sanitizer: ResultSanitizer | None = (
            ResultSanitizer(host, self.supervisor, config, self.notifier)
            if config.sanitizer.enabled else None
        )

        logger.info(
            "LittleBrother plugin initialized: model=%s failOpen=%s "
            "watchdog=%s gatekeeper=%s sanitizer=%s",
            config.model or "lazy-loaded",
            config.fail_open,
            config.watchdog.enabled,
            config.gatekeeper.enabled,
            config.sanitizer.enabled,
        )

    @classmethod
    def create(cls, host: HostClient, directory: str | Path) -> LittleBrotherPlugin:
        """Load config for *directory* and attach host logging."""
        config = load_config(directory)
        handler = install_host_logging(host, debug=config.debug)
        return cls(host, config, log_handler=handler)

    # ── Host entry points (raw payloads) ──

    async def on_event(self, data: dict[str, Any]) -> None:
        await self.handle(dict_to_event(data))

    async def on_chat_message(self, input: dict[str, Any], output: dict[str, Any]) -> None:
        await self.handle(chat_message_event(input, output))

    async def on_tool_execute_before(
        self, input: dict[str, Any], output: dict[str, Any],
    ) -> None:
        await self.handle(tool_before_event(input, output))

    async def on_tool_execute_after(
        self, input: dict[str, Any], output: dict[str, Any],
    ) -> None:
        event = tool_after_event(input, output)
        original = event.output
        await self.handle(event)
        if event.output != original:
            output["output"] = event.output

    # ── Typed dispatch ──

    async def handle(self, event: HostEvent) -> None:
        """Route one resolved event to the policy that owns it."""
        if isinstance(event, SessionDeleted):
            if event.session_id:
                self.cleanup(event.session_id)
            return

        if self.supervisor.is_internal_session(event.session_id):
            return
        if not event.session_id:
            return

        try:
            if isinstance(event, TextDelta):
                if self.watchdog is not None and event.part_type == "text":
                    self.watchdog.on_text_delta(event.session_id, event.delta)
            elif isinstance(event, ChatMessage):
                if self.watchdog is not None:
                    self.watchdog.on_chat_message(event.session_id, event.parts)
            elif isinstance(event, ToolExecuteBefore):
                if self.gatekeeper is not None:
                    await self.gatekeeper.check(
                        event.tool, event.session_id, event.args,
                    )
            elif isinstance(event, ToolExecuteAfter):
                if self.sanitizer is not None:
                    replacement = await self.sanitizer.sanitize(
                        event.tool, event.session_id, event.output,
                    )
                    if replacement is not None:
                        event.output = replacement
        except GatekeeperBlockError:
            raise
        except Exception:
            logger.exception(
                "Policy handler failed for %s in %s",
                event.event_type, event.session_id,
            )

    def cleanup(self, session_id: str) -> None:
        self.supervisor.cleanup_session(session_id)
        if self.watchdog is not None:
            self.watchdog.cleanup(session_id)
        self.registry.remove(session_id)
        logger.debug("Cleaned up session %s", session_id)

    async def drain(self) -> None:
        """Wait for background watchdog checks to settle."""
        if self.watchdog is not None:
            await self.watchdog.drain()

    async def shutdown(self) -> None:
        await self.drain()
        self.registry.clear()
        if self._log_handler is not None:
            await self._log_handler.flush_async()
            uninstall_host_logging(self._log_handler)
            self._log_handler = None
        try:
            await self.host.close()
        except Exception:
            logger.debug("Host close failed", exc_info=True)

