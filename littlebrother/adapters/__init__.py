"""Adapters package - Bridge between the host runtime and the engine.

Event resolution, host log forwarding and the plugin dispatcher.
"""
from __future__ import annotations

__all__ = [
    "LittleBrotherPlugin",
    "HostLogHandler",
    "install_host_logging",
    "dict_to_event",
]

from littlebrother.adapters.events import dict_to_event
from littlebrother.adapters.log_handler import HostLogHandler, install_host_logging
from littlebrother.adapters.plugin import LittleBrotherPlugin
