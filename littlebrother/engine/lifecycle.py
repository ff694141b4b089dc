"""Watchdog state machine.

Defines valid per-session phase transitions and enforces them.
Invalid transitions raise ValueError rather than silently proceeding.

State Diagram:

    IDLE ──> BUFFERING ──> CHECKING ──┬──> BUFFERING   (OK, or failure with fail-open)
                                      │
                                      └──> ABORTING    (ABORT, or failure with fail-closed)

    ABORTING is terminal: every later delta for the session is ignored.
"""
from __future__ import annotations

from .models import SessionState, WatchdogPhase

VALID_TRANSITIONS: dict[WatchdogPhase, set[WatchdogPhase]] = {
    WatchdogPhase.IDLE: {
        WatchdogPhase.BUFFERING,
    },
    WatchdogPhase.BUFFERING: {
        WatchdogPhase.CHECKING,
    },
    WatchdogPhase.CHECKING: {
        WatchdogPhase.BUFFERING,
        WatchdogPhase.ABORTING,
    },
    WatchdogPhase.ABORTING: set(),
}


def validate_transition(current: WatchdogPhase, target: WatchdogPhase) -> None:
    """Validate a phase transition. Raises ValueError if invalid."""
    allowed = VALID_TRANSITIONS.get(current, set())
    if target not in allowed:
        allowed_str = ", ".join(s.value for s in allowed) or "none (terminal)"
        raise ValueError(
            f"Invalid watchdog transition: {current.value} -> {target.value}. "
            f"Allowed from {current.value}: {allowed_str}"
        )


def transition(state: SessionState, target: WatchdogPhase) -> None:
    """Move *state* to *target*, validating first."""
    validate_transition(state.phase, target)
    state.phase = target
