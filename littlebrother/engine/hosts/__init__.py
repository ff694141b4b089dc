"""Host abstraction for the agent runtimes being supervised."""
from .base import HostClient
from .opencode import OpenCodeHostClient

__all__ = [
    "HostClient",
    "OpenCodeHostClient",
]
