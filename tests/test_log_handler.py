"""Tests for forwarding log records to the host."""
from __future__ import annotations

import logging

import pytest

from conftest import FakeHost
from littlebrother.adapters.log_handler import (
    HostLogHandler,
    install_host_logging,
    uninstall_host_logging,
)


@pytest.fixture
def installed(host: FakeHost):
    handler = install_host_logging(host, debug=False)
    yield handler
    uninstall_host_logging(handler)


@pytest.mark.asyncio
async def test_records_forwarded_with_host_levels(host, installed) -> None:
    log = logging.getLogger("littlebrother.engine.sample")
    log.info("info line")
    log.warning("warn line")
    log.error("error line", extra={"host_extra": {"session": "s1"}})
    await installed.flush_async()

    assert [(lvl, msg) for lvl, msg, _ in host.logs] == [
        ("info", "info line"),
        ("warn", "warn line"),
        ("error", "error line"),
    ]
    assert host.logs[2][2] == {"session": "s1", "logger": "littlebrother.engine.sample"}


@pytest.mark.asyncio
async def test_debug_filtered_unless_enabled(host, installed) -> None:
    logging.getLogger("littlebrother.engine.sample").debug("quiet")
    await installed.flush_async()
    assert host.logs == []

    handler = install_host_logging(host, debug=True)
    try:
        logging.getLogger("littlebrother.engine.sample").debug("loud")
        await handler.flush_async()
        assert host.logs[-1][:2] == ("debug", "loud")
    finally:
        uninstall_host_logging(handler)


def test_records_outside_event_loop_dropped(host, installed) -> None:
    logging.getLogger("littlebrother.engine.sample").warning("no loop")
    assert host.logs == []


def test_install_replaces_previous_handler(host) -> None:
    first = install_host_logging(host)
    second = install_host_logging(FakeHost())
    try:
        handlers = [
            h for h in logging.getLogger("littlebrother").handlers
            if isinstance(h, HostLogHandler)
        ]
        assert handlers == [second]
    finally:
        uninstall_host_logging(first)
        uninstall_host_logging(second)


@pytest.mark.asyncio
async def test_host_failure_does_not_raise(host, installed, monkeypatch) -> None:
    async def broken(level, message, extra=None):
        raise ConnectionError("sink down")

    monkeypatch.setattr(host, "log", broken)
    logging.getLogger("littlebrother.engine.sample").warning("lost")
    await installed.flush_async()
