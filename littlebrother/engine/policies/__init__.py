"""Policy state machines driven by host events."""
from .gatekeeper import ActionGatekeeper
from .sanitizer import ResultSanitizer
from .watchdog import StreamWatchdog

__all__ = [
    "ActionGatekeeper",
    "ResultSanitizer",
    "StreamWatchdog",
]
