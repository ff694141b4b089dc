"""Result sanitizer.

Post-processes tool output, in order:

1. truncation to ``max_output_chars`` plus a marker
2. regex redaction of secret-shaped strings
3. optional supervisor deep analysis, only when steps 1-2 changed
   nothing and the content is long enough to be worth a model call

Sanitization is advisory (the tool already ran), so a supervisor
failure here never blocks: content is left as is and a warning shown.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from ..config import SanitizerConfig, SupervisorConfig
from ..hosts.base import HostClient
from ..models import DecisionKind, PolicyType
from ..notifications import Notifier
from ..supervisor_client import SupervisorClient

logger = logging.getLogger(__name__)

REDACTION_MARKER = "[REDACTED: Potential secret]"
DEEP_ANALYSIS_MIN_CHARS = 1000
DEEP_ANALYSIS_SAMPLE_CHARS = 2000
LOGGED_PREFIX_CHARS = 10

SECRET_PATTERNS: tuple[re.Pattern[str], ...] = (
    # credential assignments
    re.compile(
        r"""(?:api[_-]?key|apikey|secret|password|token|auth|credential)[\s:=]+['"]?[\w\-/+=]{20,}['"]?""",
        re.IGNORECASE,
    ),
    # provider-prefixed API keys
    re.compile(r"(?:sk-|pk_|rk_|ghp_|gho_|glpat-|xox[baprs]-|AKIA|ASIA)[\w\-]{16,}"),
    re.compile(r"-----BEGIN (?:RSA |DSA |EC |OPENSSH )?PRIVATE KEY-----"),
    # credentialed database URIs
    re.compile(
        r"(?:mongodb(?:\+srv)?|postgres(?:ql)?|mysql|redis)://[^\s]+:[^\s]+@[^\s]+",
        re.IGNORECASE,
    ),
    # JWTs
    re.compile(r"eyJ[A-Za-z0-9_-]*\.eyJ[A-Za-z0-9_-]*\.[A-Za-z0-9_-]*"),
)


def truncation_marker(max_chars: int) -> str:
    return f"\n\n[TRUNCATED: Output exceeded {max_chars} characters]"


@dataclass
class LocalSanitizeResult:
    content: str
    truncated: bool = False
    # Truncated prefixes of each redacted match, safe to log
    redactions: list[str] = field(default_factory=list)

    @property
    def modified(self) -> bool:
        return self.truncated or bool(self.redactions)


def truncate(content: str, max_chars: int) -> tuple[str, bool]:
    if len(content) <= max_chars:
        return content, False
    return content[:max_chars] + truncation_marker(max_chars), True


def redact_secrets(content: str) -> tuple[str, list[str]]:
    """Replace every secret-pattern match. Returns (content, prefixes)."""
    redactions: list[str] = []
    for pattern in SECRET_PATTERNS:
        matches = pattern.findall(content)
        if not matches:
            continue
        redactions.extend(f"{m[:LOGGED_PREFIX_CHARS]}..." for m in matches)
        content = pattern.sub(REDACTION_MARKER, content)
    return content, redactions


def sanitize_locally(content: str, config: SanitizerConfig) -> LocalSanitizeResult:
    """Steps 1 and 2: no supervisor involved."""
    content, truncated = truncate(content, config.max_output_chars)
    result = LocalSanitizeResult(content=content, truncated=truncated)
    if config.redact_secrets:
        result.content, result.redactions = redact_secrets(result.content)
    return result


class ResultSanitizer:
    """Sanitizes tool output before the agent sees it."""

    def __init__(
        self,
        host: HostClient,
        supervisor: SupervisorClient,
        config: SupervisorConfig,
        notifier: Notifier | None = None,
    ) -> None:
        self._supervisor = supervisor
        self._config = config
        self._notifier = notifier or Notifier(host)

    async def sanitize(self, tool: str, session_id: str, output: str) -> str | None:
        """Return the replacement output, or None when unchanged."""
        cfg = self._config.sanitizer
        if not cfg.enabled:
            return None
        if self._supervisor.is_internal_session(session_id):
            return None

        if self._config.debug:
            await self._notifier.toast(f"Sanitizer: checking {tool} output...", "info")

        local = sanitize_locally(output, cfg)
        if local.truncated:
            logger.debug(
                "Truncated %s output from %d chars", tool, len(output),
            )
        if local.redactions:
            logger.warning(
                "Redacted %d potential secret(s) from %s in %s: %s",
                len(local.redactions), tool, session_id,
                ", ".join(local.redactions),
            )
            await self._notifier.toast(
                f"Redacted {len(local.redactions)} potential secret(s)", "warning",
            )
        if local.modified:
            return local.content

        if cfg.deep_analysis and len(local.content) > DEEP_ANALYSIS_MIN_CHARS:
            return await self._deep_analysis(tool, session_id, local.content)
        return None

    async def _deep_analysis(self, tool: str, session_id: str, content: str) -> str | None:
        sample = content[:DEEP_ANALYSIS_SAMPLE_CHARS]
        try:
            decision = await self._supervisor.query(
                session_id, PolicyType.SANITIZER, sample,
            )
        except Exception as exc:
            logger.warning("Sanitizer deep analysis failed for %s: %s", tool, exc)
            await self._notifier.toast(
                "Supervisor unavailable - sanitizer deep analysis skipped", "warning",
            )
            return None

        if decision.kind is DecisionKind.REDACT and decision.replacement:
            logger.info(
                "Deep analysis redacted %s output: %s", tool, decision.reason,
            )
            await self._notifier.toast(
                f"Content redacted: {decision.reason}", "warning",
            )
            return decision.replacement
        return None
