"""LittleBrother engine: supervisor-mediated policy enforcement."""
from .models import (
    Decision,
    DecisionKind,
    PolicyType,
    SessionState,
    WatchdogPhase,
)
from .config import (
    DEFAULT_SUPERVISOR_MODEL,
    GatekeeperConfig,
    ModelRef,
    SanitizerConfig,
    SupervisorConfig,
    WatchdogConfig,
    parse_model_string,
)
from .decision_parser import parse_decision
from .errors import (
    ConfigError,
    GatekeeperBlockError,
    MainSessionDeletedError,
    SupervisorError,
    SupervisorSessionError,
    SupervisorTimeoutError,
)
from .session_registry import SessionRegistry

__all__ = [
    # Supervisor session manager (lazy import)
    "SupervisorClient",
    # Models
    "Decision",
    "DecisionKind",
    "PolicyType",
    "SessionState",
    "WatchdogPhase",
    "SessionRegistry",
    "parse_decision",
    # Config
    "DEFAULT_SUPERVISOR_MODEL",
    "GatekeeperConfig",
    "ModelRef",
    "SanitizerConfig",
    "SupervisorConfig",
    "WatchdogConfig",
    "parse_model_string",
    "load_config",
    # Policies (lazy import)
    "StreamWatchdog",
    "ActionGatekeeper",
    "ResultSanitizer",
    # Hosts (lazy import)
    "HostClient",
    "OpenCodeHostClient",
    # Errors
    "ConfigError",
    "GatekeeperBlockError",
    "MainSessionDeletedError",
    "SupervisorError",
    "SupervisorSessionError",
    "SupervisorTimeoutError",
]


def __getattr__(name: str):
    if name == "SupervisorClient":
        from .supervisor_client import SupervisorClient
        return SupervisorClient
    if name == "load_config":
        from .yaml_config import load_config
        return load_config
    if name == "StreamWatchdog":
        from .policies.watchdog import StreamWatchdog
        return StreamWatchdog
    if name == "ActionGatekeeper":
        from .policies.gatekeeper import ActionGatekeeper
        return ActionGatekeeper
    if name == "ResultSanitizer":
        from .policies.sanitizer import ResultSanitizer
        return ResultSanitizer
    if name == "HostClient":
        from .hosts.base import HostClient
        return HostClient
    if name == "OpenCodeHostClient":
        from .hosts.opencode import OpenCodeHostClient
        return OpenCodeHostClient
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
