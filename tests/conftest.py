"""Shared fixtures: an in-memory host standing in for opencode."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

import pytest

from littlebrother.engine.config import (
    GatekeeperConfig,
    SanitizerConfig,
    SupervisorConfig,
    WatchdogConfig,
)
from littlebrother.engine.hosts.base import HostClient
from littlebrother.engine.session_registry import SessionRegistry
from littlebrother.engine.supervisor_client import SupervisorClient

OK_REPLY = '{"status": "OK", "reason": "looks fine"}'


@dataclass
class PromptCall:
    session_id: str
    text: str
    system: str
    tools: dict[str, bool]
    model: Any


class FakeHost(HostClient):
    """Records every call. Replies are taken from ``replies`` in order;
    an exception instance in the list is raised instead."""

    def __init__(self) -> None:
        self.created: list[str] = []
        self.prompts: list[PromptCall] = []
        self.injected: list[tuple[str, str]] = []
        self.aborted: list[str] = []
        self.toasts: list[tuple[str, str]] = []
        self.logs: list[tuple[str, str, dict | None]] = []
        self.replies: list[Any] = []
        self.default_reply: str = OK_REPLY
        self.tool_ids: list[str] | Exception = ["bash", "read", "edit"]
        self.small_model: str | None = None
        self.create_delay = 0.0
        self.prompt_delay = 0.0
        self.create_returns_id = True
        self.fail_abort = False
        self.fail_notifications = False
        self._next_id = 0

    async def create_session(self, parent_id: str, title: str) -> str | None:
        self.created.append(parent_id)
        if self.create_delay:
            await asyncio.sleep(self.create_delay)
        if not self.create_returns_id:
            return None
        self._next_id += 1
        return f"sup-{self._next_id}"

    async def prompt(self, session_id, *, model, system, tools, text):
        self.prompts.append(PromptCall(session_id, text, system, tools, model))
        if self.prompt_delay:
            await asyncio.sleep(self.prompt_delay)
        reply = self.replies.pop(0) if self.replies else self.default_reply
        if isinstance(reply, BaseException):
            raise reply
        if reply is None:
            return None
        return [{"type": "text", "text": reply}]

    async def inject_message(self, session_id: str, text: str) -> None:
        if self.fail_notifications:
            raise ConnectionError("inject failed")
        self.injected.append((session_id, text))

    async def abort_session(self, session_id: str) -> None:
        if self.fail_abort:
            raise ConnectionError("abort failed")
        self.aborted.append(session_id)

    async def list_tool_ids(self) -> list[str]:
        if isinstance(self.tool_ids, Exception):
            raise self.tool_ids
        return list(self.tool_ids)

    async def get_small_model(self) -> str | None:
        return self.small_model

    async def show_toast(self, message: str, variant: str = "warning") -> None:
        if self.fail_notifications:
            raise ConnectionError("toast failed")
        self.toasts.append((message, variant))

    async def log(self, level, message, extra=None) -> None:
        self.logs.append((level, message, extra))

    def toast_messages(self, variant: str | None = None) -> list[str]:
        return [m for m, v in self.toasts if variant is None or v == variant]


def make_config(
    *,
    fail_open: bool = True,
    timeout_ms: int = 5000,
    model: str | None = "test/supervisor",
    debug: bool = False,
    watchdog: dict | None = None,
    gatekeeper: dict | None = None,
    sanitizer: dict | None = None,
) -> SupervisorConfig:
    return SupervisorConfig(
        model=model,
        fail_open=fail_open,
        timeout_ms=timeout_ms,
        debug=debug,
        watchdog=WatchdogConfig(**(watchdog or {})),
        gatekeeper=GatekeeperConfig(**(gatekeeper or {})),
        sanitizer=SanitizerConfig(**(sanitizer or {})),
    )


def make_supervisor(host: FakeHost, config: SupervisorConfig, **kwargs) -> SupervisorClient:
    kwargs.setdefault("base_delay", 0.0)
    return SupervisorClient(host, config, **kwargs)


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()
