"""Tests for the action gatekeeper."""
from __future__ import annotations

import json

import pytest

from conftest import FakeHost, make_config, make_supervisor
from littlebrother.engine.errors import GatekeeperBlockError
from littlebrother.engine.policies.gatekeeper import (
    UNAVAILABLE_REASON,
    UNKNOWN_GOAL,
    ActionGatekeeper,
)
from littlebrother.engine.session_registry import SessionRegistry


def _gatekeeper(host: FakeHost, registry: SessionRegistry, **config_kwargs):
    config = make_config(**config_kwargs)
    supervisor = make_supervisor(host, config)
    return ActionGatekeeper(host, supervisor, config, registry), supervisor


@pytest.mark.asyncio
async def test_blocked_tool_never_reaches_supervisor(host, registry) -> None:
    gk, _ = _gatekeeper(host, registry, gatekeeper={"blocked_tools": ["rm"]})
    with pytest.raises(GatekeeperBlockError) as exc_info:
        await gk.check("rm", "s1", {"path": "/"})
    assert exc_info.value.tool == "rm"
    assert exc_info.value.reason == 'Tool "rm" is blocked by policy'
    assert str(exc_info.value).startswith("[LittleBrother] Blocked:")
    assert host.prompts == []
    assert host.created == []


@pytest.mark.asyncio
async def test_block_list_is_case_insensitive(host, registry) -> None:
    gk, _ = _gatekeeper(host, registry, gatekeeper={"blocked_tools": ["Bash"]})
    with pytest.raises(GatekeeperBlockError):
        await gk.check("BASH", "s1", {})


@pytest.mark.asyncio
async def test_block_list_wins_over_allow_list(host, registry) -> None:
    gk, _ = _gatekeeper(host, registry, gatekeeper={
        "blocked_tools": ["read"], "always_allow_tools": ["read"],
    })
    with pytest.raises(GatekeeperBlockError):
        await gk.check("read", "s1", {})


@pytest.mark.asyncio
async def test_allow_list_skips_supervisor(host, registry) -> None:
    gk, _ = _gatekeeper(host, registry)
    await gk.check("read", "s1", {"filePath": "a.py"})
    await gk.check("Grep", "s1", {"pattern": "x"})
    assert host.prompts == []


@pytest.mark.asyncio
async def test_supervisor_allow(host, registry) -> None:
    host.replies = ['{"status": "ALLOW", "reason": "safe"}']
    gk, _ = _gatekeeper(host, registry)
    await gk.check("bash", "s1", {"command": "ls"})
    assert len(host.prompts) == 1


@pytest.mark.asyncio
async def test_supervisor_block(host, registry) -> None:
    host.replies = ['{"status": "BLOCK", "reason": "deletes the repo"}']
    gk, _ = _gatekeeper(host, registry)
    with pytest.raises(GatekeeperBlockError) as exc_info:
        await gk.check("bash", "s1", {"command": "rm -rf ."})
    assert exc_info.value.reason == "deletes the repo"
    assert ("[LittleBrother] Blocked bash: deletes the repo", "warning") in host.toasts


@pytest.mark.asyncio
async def test_payload_carries_tool_args_and_goal(host, registry) -> None:
    registry.get_or_create("s1").user_goal = "add logging"
    gk, _ = _gatekeeper(host, registry)
    await gk.check("bash", "s1", {"command": "pytest"})

    text = host.prompts[0].text
    assert text.startswith("User Goal: add logging\n\nPayload:\n")
    payload = json.loads(text.split("Payload:\n", 1)[1])
    assert payload == {"tool": "bash", "args": {"command": "pytest"}}


@pytest.mark.asyncio
async def test_unknown_goal_placeholder(host, registry) -> None:
    gk, _ = _gatekeeper(host, registry)
    await gk.check("bash", "s1", {})
    assert host.prompts[0].text.startswith(f"User Goal: {UNKNOWN_GOAL}\n")


@pytest.mark.asyncio
async def test_unserializable_args_are_stringified(host, registry) -> None:
    gk, _ = _gatekeeper(host, registry)
    await gk.check("bash", "s1", {"obj": object()})
    assert '"obj": "<object object at' in host.prompts[0].text


@pytest.mark.asyncio
async def test_failure_fail_open_allows_with_warning(host, registry) -> None:
    host.replies = [ConnectionError("down")] * 3
    gk, _ = _gatekeeper(host, registry, fail_open=True)
    await gk.check("bash", "s1", {"command": "ls"})
    assert host.toasts == [
        ("[LittleBrother] Supervisor unavailable - allowing bash (fail-open)", "warning"),
    ]


@pytest.mark.asyncio
async def test_failure_fail_closed_blocks_with_error(host, registry) -> None:
    host.replies = [ConnectionError("down")] * 3
    gk, _ = _gatekeeper(host, registry, fail_open=False)
    with pytest.raises(GatekeeperBlockError) as exc_info:
        await gk.check("bash", "s1", {"command": "ls"})
    assert exc_info.value.reason == UNAVAILABLE_REASON
    assert [v for _, v in host.toasts] == ["error"]


@pytest.mark.asyncio
async def test_timeout_counts_as_failure(host, registry) -> None:
    host.prompt_delay = 5.0
    config = make_config(fail_open=False, timeout_ms=1000)
    supervisor = make_supervisor(host, config, retries=0)
    gk = ActionGatekeeper(host, supervisor, config, registry)
    with pytest.raises(GatekeeperBlockError):
        await gk.check("bash", "s1", {})


@pytest.mark.asyncio
async def test_disabled_gatekeeper_allows_everything(host, registry) -> None:
    gk, _ = _gatekeeper(host, registry, gatekeeper={
        "enabled": False, "blocked_tools": ["bash"],
    })
    await gk.check("bash", "s1", {})
    assert host.prompts == []


@pytest.mark.asyncio
async def test_internal_session_skipped(host, registry) -> None:
    gk, supervisor = _gatekeeper(host, registry, gatekeeper={"blocked_tools": ["bash"]})
    await supervisor.query("main", "gatekeeper", "warm up")
    sup_id = supervisor.supervisor_session_for("main")
    await gk.check("bash", sup_id, {})
    assert len(host.prompts) == 1
