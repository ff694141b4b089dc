"""Parse supervisor replies into Decisions.

The reply is expected to be a JSON object with ``status``, ``reason``
and (for REDACT) ``replacement``. Models often wrap it in prose or a
Markdown fence, so the first balanced ``{...}`` object is extracted
first. Anything unparseable becomes the safe default; this module
never raises.
"""
from __future__ import annotations

import json
import logging
import re

from .models import NO_REASON, Decision, DecisionKind

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```(?:json|JSON)?\s*\n(?P<body>[\s\S]*?)\n```$")


def parse_decision(raw: str) -> Decision:
    """Turn raw model text into a Decision, defaulting to OK."""
    text = _strip_code_fence((raw or "").strip())
    candidate = extract_json_object(text)
    if candidate is None:
        candidate = text

    try:
        parsed = json.loads(candidate)
    except ValueError:
        return _parse_failure(raw, "invalid JSON")

    if not isinstance(parsed, dict):
        return _parse_failure(raw, "not a JSON object")

    status = str(parsed.get("status")).upper()
    try:
        kind = DecisionKind(status)
    except ValueError:
        return _parse_failure(raw, f"unknown status {status!r}")

    reason = parsed.get("reason")
    replacement = parsed.get("replacement")
    return Decision(
        kind=kind,
        reason=str(reason) if reason else NO_REASON,
        replacement=str(replacement) if replacement else None,
    )


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring of *text*.

    Braces inside JSON string literals are ignored.
    """
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def _strip_code_fence(text: str) -> str:
    fence = _FENCE_RE.match(text)
    if fence:
        return fence.group("body").strip()
    return text


def _parse_failure(raw: str, why: str) -> Decision:
    logger.warning(
        "Failed to parse supervisor response (%s): %r", why, (raw or "")[:200],
    )
    return Decision.safe_default()
