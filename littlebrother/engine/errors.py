"""Exception hierarchy for the supervisor engine.

Specific exceptions for each failure mode. Policies catch at their
own boundary; GatekeeperBlockError is the only one meant to reach
the host.
"""
from __future__ import annotations


class SupervisorError(Exception):
    """Base exception for all supervisor errors."""


class ConfigError(SupervisorError):
    """A configuration value has the wrong type or shape."""
    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid config value for {key}: {reason}")


class SupervisorTimeoutError(SupervisorError):
    """A single supervisor prompt exceeded its time budget."""
    def __init__(self, session_id: str, timeout_ms: int):
        self.session_id = session_id
        self.timeout_ms = timeout_ms
        super().__init__(
            f"Supervisor timeout after {timeout_ms}ms "
            f"(supervisor session {session_id})"
        )


class SupervisorSessionError(SupervisorError):
    """The host returned nothing usable for a hidden-session operation."""
    def __init__(self, main_session_id: str, reason: str):
        self.main_session_id = main_session_id
        self.reason = reason
        super().__init__(
            f"Supervisor session for {main_session_id}: {reason}"
        )


class GatekeeperBlockError(SupervisorError):
    """A tool invocation was blocked by policy.

    Distinct from a tool crash so the host can tell the two apart.
    """
    def __init__(self, tool: str, reason: str):
        self.tool = tool
        self.reason = reason
        super().__init__(f"[LittleBrother] Blocked: {reason}")


class MainSessionDeletedError(SupervisorSessionError):
    """The main session was deleted while its supervisor session was created.

    Not retried: a new hidden session for a deleted main session would
    never be cleaned up.
    """
    def __init__(self, main_session_id: str, supervisor_session_id: str):
        self.supervisor_session_id = supervisor_session_id
        super().__init__(
            main_session_id,
            f"deleted while supervisor session {supervisor_session_id} was created",
        )
