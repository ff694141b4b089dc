"""Forward ``littlebrother`` log records to the host's log sink.

The host sink is asynchronous and may fail; forwarding is fire and
forget. Records emitted outside a running event loop are not
forwarded (they still reach any other configured handlers).
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any

from littlebrother.engine.hosts.base import HostClient

logger = logging.getLogger(__name__)

ROOT_LOGGER_NAME = "littlebrother"

_HOST_LEVELS = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warn",
    logging.ERROR: "error",
    logging.CRITICAL: "error",
}


class HostLogHandler(logging.Handler):
    """logging.Handler that ships records to HostClient.log()."""

    def __init__(self, host: HostClient, debug: bool = False) -> None:
        super().__init__(logging.DEBUG if debug else logging.INFO)
        self._host = host
        self._tasks: set[asyncio.Task[None]] = set()

    def emit(self, record: logging.LogRecord) -> None:
        # Our own delivery failures would recurse
        if record.name == __name__:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        try:
            message = self.format(record)
        except Exception:
            self.handleError(record)
            return
        level = _HOST_LEVELS.get(record.levelno, "info")
        extra = getattr(record, "host_extra", None)
        extra = dict(extra) if isinstance(extra, dict) else {}
        extra.setdefault("logger", record.name)

        task = loop.create_task(self._send(level, message, extra))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _send(self, level: str, message: str, extra: dict[str, Any]) -> None:
        try:
            await self._host.log(level, message, extra)
        except Exception:
            logger.debug("Host log delivery failed", exc_info=True)

    async def flush_async(self) -> None:
        """Wait for records already handed to the host."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


def install_host_logging(host: HostClient, debug: bool = False) -> HostLogHandler:
    """Attach a HostLogHandler to the package logger, replacing any previous one."""
    root = logging.getLogger(ROOT_LOGGER_NAME)
    for existing in list(root.handlers):
        if isinstance(existing, HostLogHandler):
            root.removeHandler(existing)
    handler = HostLogHandler(host, debug=debug)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    return handler


def uninstall_host_logging(handler: HostLogHandler) -> None:
    logging.getLogger(ROOT_LOGGER_NAME).removeHandler(handler)
