"""Supervisor configuration.

Validated once at startup. Numeric options are clamped to their
documented range when the config is built, never at use time.
Override via LITTLEBROTHER_* env vars.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SUPERVISOR_MODEL = "google/gemini-2.5-flash"

DEFAULT_ALWAYS_ALLOW_TOOLS: frozenset[str] = frozenset({
    "read", "glob", "grep", "lsp_hover", "lsp_diagnostics",
})

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ModelRef:
    """A supervisor model split into host provider and model id."""
    provider_id: str
    model_id: str

    def __str__(self) -> str:
        return f"{self.provider_id}/{self.model_id}"


def parse_model_string(model: str) -> ModelRef:
    """Split ``provider/model`` (the model part may contain slashes)."""
    parts = str(model).split("/")
    if len(parts) < 2 or not parts[0] or not "/".join(parts[1:]):
        raise ConfigError(
            "supervisor.model",
            f'"{model}" is not in "provider/model" format',
        )
    return ModelRef(provider_id=parts[0], model_id="/".join(parts[1:]))


def _clamp(key: str, value: Any, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(key, f"expected a number, got {value!r}")
    if value != value:  # NaN
        raise ConfigError(key, "expected a number, got NaN")
    return int(min(high, max(low, value)))


def _require_bool(key: str, value: Any) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(key, f"expected true/false, got {value!r}")
    return value


def _tool_set(key: str, value: Any) -> frozenset[str]:
    if isinstance(value, str) or not isinstance(
        value, (list, tuple, set, frozenset)
    ):
        raise ConfigError(key, f"expected a list of tool names, got {value!r}")
    for item in value:
        if not isinstance(item, str):
            raise ConfigError(key, f"tool names must be strings, got {item!r}")
    return frozenset(value)


@dataclass(frozen=True)
class WatchdogConfig:
    enabled: bool = True
    check_interval_chars: int = 500
    max_buffer_chars: int = 2000

    def __post_init__(self) -> None:
        _require_bool("watchdog.enabled", self.enabled)
        object.__setattr__(self, "check_interval_chars", _clamp(
            "watchdog.check_interval_chars", self.check_interval_chars, 100, 5000,
        ))
        object.__setattr__(self, "max_buffer_chars", _clamp(
            "watchdog.max_buffer_chars", self.max_buffer_chars, 500, 10000,
        ))


@dataclass(frozen=True)
class GatekeeperConfig:
    enabled: bool = True
    blocked_tools: frozenset[str] = field(default_factory=frozenset)
    always_allow_tools: frozenset[str] = DEFAULT_ALWAYS_ALLOW_TOOLS

    def __post_init__(self) -> None:
        _require_bool("gatekeeper.enabled", self.enabled)
        object.__setattr__(self, "blocked_tools", _tool_set(
            "gatekeeper.blocked_tools", self.blocked_tools,
        ))
        object.__setattr__(self, "always_allow_tools", _tool_set(
            "gatekeeper.always_allow_tools", self.always_allow_tools,
        ))

    def is_blocked(self, tool: str) -> bool:
        name = tool.lower()
        return any(t.lower() == name for t in self.blocked_tools)

    def is_always_allowed(self, tool: str) -> bool:
        name = tool.lower()
        return any(t.lower() == name for t in self.always_allow_tools)


@dataclass(frozen=True)
class SanitizerConfig:
    enabled: bool = True
    max_output_chars: int = 5000
    redact_secrets: bool = True
    deep_analysis: bool = False

    def __post_init__(self) -> None:
        _require_bool("sanitizer.enabled", self.enabled)
        _require_bool("sanitizer.redact_secrets", self.redact_secrets)
        _require_bool("sanitizer.deep_analysis", self.deep_analysis)
        object.__setattr__(self, "max_output_chars", _clamp(
            "sanitizer.max_output_chars", self.max_output_chars, 1000, 50000,
        ))


@dataclass(frozen=True)
class SupervisorConfig:
    """Complete supervisor configuration."""

    # "provider/model". None means: ask the host for its small_model,
    # then fall back to DEFAULT_SUPERVISOR_MODEL.
    model: str | None = None
    fail_open: bool = True
    timeout_ms: int = 5000
    debug: bool = False
    watchdog: WatchdogConfig = field(default_factory=WatchdogConfig)
    gatekeeper: GatekeeperConfig = field(default_factory=GatekeeperConfig)
    sanitizer: SanitizerConfig = field(default_factory=SanitizerConfig)

    def __post_init__(self) -> None:
        _require_bool("fail_open", self.fail_open)
        _require_bool("debug", self.debug)
        object.__setattr__(self, "timeout_ms", _clamp(
            "timeout_ms", self.timeout_ms, 1000, 30000,
        ))
        if self.model is not None:
            parse_model_string(self.model)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SupervisorConfig:
        """Build a config from a parsed config file.

        Accepts the plugin file's camelCase keys as well as the field
        names. A malformed supervisor model is logged and dropped.
        """
        supervisor = raw.get("supervisor") or {}
        if not isinstance(supervisor, dict):
            raise ConfigError("supervisor", "expected a mapping")
        model = supervisor.get("model", raw.get("model"))
        if model is not None:
            try:
                parse_model_string(model)
            except ConfigError as exc:
                logger.warning("Ignoring supervisor model: %s", exc)
                model = None

        kwargs: dict[str, Any] = {"model": model}
        for key, names in (
            ("fail_open", ("failOpen", "fail_open")),
            ("timeout_ms", ("timeout", "timeoutMs", "timeout_ms")),
            ("debug", ("debug",)),
        ):
            value = _pick(raw, names)
            if value is not None:
                kwargs[key] = value

        watchdog = _section(raw, "watchdog")
        gatekeeper = _section(raw, "gatekeeper")
        sanitizer = _section(raw, "sanitizer")

        kwargs["watchdog"] = WatchdogConfig(**_pick_fields(watchdog, {
            "enabled": ("enabled",),
            "check_interval_chars": (
                "checkIntervalTokens", "checkIntervalChars", "check_interval_chars",
            ),
            "max_buffer_chars": (
                "maxBufferTokens", "maxBufferChars", "max_buffer_chars",
            ),
        }))
        kwargs["gatekeeper"] = GatekeeperConfig(**_pick_fields(gatekeeper, {
            "enabled": ("enabled",),
            "blocked_tools": ("blockedTools", "blocked_tools"),
            "always_allow_tools": ("alwaysAllowTools", "always_allow_tools"),
        }))
        kwargs["sanitizer"] = SanitizerConfig(**_pick_fields(sanitizer, {
            "enabled": ("enabled",),
            "max_output_chars": ("maxOutputChars", "max_output_chars"),
            "redact_secrets": ("redactSecrets", "redact_secrets"),
            "deep_analysis": ("deepAnalysis", "deep_analysis"),
        }))
        return cls(**kwargs)

    def with_env_overrides(self) -> SupervisorConfig:
        """Apply LITTLEBROTHER_* environment variable overrides."""
        lb_vars = {
            k: v for k, v in os.environ.items()
            if k.startswith("LITTLEBROTHER_")
        }
        if not lb_vars:
            logger.debug("with_env_overrides: no LITTLEBROTHER_* env vars set")
            return self
        logger.info(
            "with_env_overrides: LITTLEBROTHER_* env overrides: %s",
            ", ".join(sorted(lb_vars)),
        )

        changes: dict[str, Any] = {}
        model = os.getenv("LITTLEBROTHER_SUPERVISOR_MODEL")
        if model:
            try:
                parse_model_string(model)
                changes["model"] = model
            except ConfigError as exc:
                logger.warning("Ignoring LITTLEBROTHER_SUPERVISOR_MODEL: %s", exc)
        fail_open = os.getenv("LITTLEBROTHER_FAIL_OPEN")
        if fail_open is not None:
            changes["fail_open"] = fail_open.lower() in _TRUTHY
        timeout = os.getenv("LITTLEBROTHER_TIMEOUT_MS")
        if timeout:
            try:
                changes["timeout_ms"] = int(timeout)
            except ValueError:
                raise ConfigError(
                    "LITTLEBROTHER_TIMEOUT_MS", f"not an integer: {timeout!r}",
                ) from None
        debug = os.getenv("LITTLEBROTHER_DEBUG")
        if debug is not None:
            changes["debug"] = debug.lower() in _TRUTHY
        return replace(self, **changes) if changes else self

    def summary(self) -> dict[str, Any]:
        """Plain-data view, used for logging and the CLI."""
        return {
            "supervisor": {"model": self.model},
            "failOpen": self.fail_open,
            "timeout": self.timeout_ms,
            "debug": self.debug,
            "watchdog": {
                "enabled": self.watchdog.enabled,
                "checkIntervalTokens": self.watchdog.check_interval_chars,
                "maxBufferTokens": self.watchdog.max_buffer_chars,
            },
            "gatekeeper": {
                "enabled": self.gatekeeper.enabled,
                "blockedTools": sorted(self.gatekeeper.blocked_tools),
                "alwaysAllowTools": sorted(self.gatekeeper.always_allow_tools),
            },
            "sanitizer": {
                "enabled": self.sanitizer.enabled,
                "maxOutputChars": self.sanitizer.max_output_chars,
                "redactSecrets": self.sanitizer.redact_secrets,
                "deepAnalysis": self.sanitizer.deep_analysis,
            },
        }


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(name, "expected a mapping")
    return value


def _pick(raw: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return None


def _pick_fields(
    raw: dict[str, Any], aliases: dict[str, tuple[str, ...]],
) -> dict[str, Any]:
    picked: dict[str, Any] = {}
    for field_name, names in aliases.items():
        value = _pick(raw, names)
        if value is not None:
            picked[field_name] = value
    return picked
