"""User-visible notifications.

Both calls are best effort: a failing notification is logged to the
internal diagnostic logger and never reaches policy logic.
"""
from __future__ import annotations

import logging

from .hosts.base import HostClient

logger = logging.getLogger(__name__)

PRODUCT_PREFIX = "[LittleBrother]"

_ICONS = {
    "error": "\U0001f6ab",
    "warning": "⚠️",
    "info": "ℹ️",
}


class Notifier:
    """Toasts and in-session messages carrying the product prefix."""

    def __init__(self, host: HostClient) -> None:
        self._host = host

    async def toast(self, message: str, variant: str = "warning") -> None:
        try:
            await self._host.show_toast(f"{PRODUCT_PREFIX} {message}", variant)
        except Exception:
            logger.debug("Toast failed: %s", message, exc_info=True)

    async def inject(
        self,
        session_id: str,
        message: str,
        level: str = "warning",
    ) -> None:
        icon = _ICONS.get(level, _ICONS["info"])
        try:
            await self._host.inject_message(
                session_id, f"{icon} {PRODUCT_PREFIX} {message}",
            )
        except Exception:
            logger.debug(
                "Inject into %s failed: %s", session_id, message, exc_info=True,
            )
