"""Core data models for the supervisor engine.

Decision vocabulary, policy types and per-session scratch state. Single
source of truth to avoid circular imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DecisionKind(str, Enum):
    """Verdict kinds a supervisor reply may carry."""
    OK = "OK"
    ABORT = "ABORT"
    ALLOW = "ALLOW"
    BLOCK = "BLOCK"
    SAFE = "SAFE"
    REDACT = "REDACT"


class PolicyType(str, Enum):
    """Which policy is asking. Selects the supervisor system prompt."""
    WATCHDOG = "watchdog"
    GATEKEEPER = "gatekeeper"
    SANITIZER = "sanitizer"


class WatchdogPhase(str, Enum):
    """Per-session watchdog states. See lifecycle.py for transition rules."""
    IDLE = "idle"
    BUFFERING = "buffering"
    CHECKING = "checking"
    ABORTING = "aborting"


PARSE_ERROR_REASON = "parse error"
NO_REASON = "No reason provided"


@dataclass(frozen=True)
class Decision:
    """A parsed supervisor verdict.

    Only produced by decision_parser.parse_decision(), or as the
    safe default when a reply cannot be understood.
    """
    kind: DecisionKind
    reason: str = NO_REASON
    # Only meaningful for REDACT
    replacement: str | None = None

    @classmethod
    def safe_default(cls) -> Decision:
        return cls(kind=DecisionKind.OK, reason=PARSE_ERROR_REASON)


@dataclass
class SessionState:
    """Scratch state for one monitored (main) session."""
    user_goal: str | None = None
    token_buffer: list[str] = field(default_factory=list)
    # Cumulative characters appended at the time of the last check
    last_check_token_count: int = 0
    # Cumulative characters ever appended; never reduced by eviction
    total_chars: int = 0
    phase: WatchdogPhase = WatchdogPhase.IDLE
    last_failure_toast_at: float | None = None

    @property
    def aborting(self) -> bool:
        """Terminal latch. Once set, the watchdog ignores further deltas."""
        return self.phase is WatchdogPhase.ABORTING

    @property
    def buffered_chars(self) -> int:
        return sum(len(fragment) for fragment in self.token_buffer)
