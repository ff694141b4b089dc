"""Event types delivered by the host.

Raw host payloads (bus events and hook arguments) are resolved into
these dataclasses once, at the boundary. Handlers dispatch on the
class and never inspect raw dicts.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class HostEvent:
    """Base event from the host."""
    event_type: str = ""
    session_id: str | None = None


@dataclass
class TextDelta(HostEvent):
    """A streamed fragment of a message part."""
    event_type: str = "message.part.updated"
    delta: str = ""
    part_type: str = "text"


@dataclass
class ChatMessage(HostEvent):
    """An outbound user chat message."""
    event_type: str = "chat.message"
    parts: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class ToolExecuteBefore(HostEvent):
    """A tool is about to run. ``args`` may be mutated in place."""
    event_type: str = "tool.execute.before"
    tool: str = ""
    call_id: str = ""
    args: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolExecuteAfter(HostEvent):
    """A tool has run. ``output`` may be replaced."""
    event_type: str = "tool.execute.after"
    tool: str = ""
    call_id: str = ""
    title: str = ""
    output: str = ""
    metadata: Any = None


@dataclass
class SessionDeleted(HostEvent):
    event_type: str = "session.deleted"


@dataclass
class UnknownEvent(HostEvent):
    """Any bus event the engine does not act on."""


def _properties(data: dict[str, Any]) -> dict[str, Any]:
    props = data.get("properties")
    return props if isinstance(props, dict) else {}


def _info_id(props: dict[str, Any]) -> str | None:
    info = props.get("info")
    if isinstance(info, dict) and isinstance(info.get("id"), str):
        return info["id"]
    return None


def dict_to_event(data: dict[str, Any]) -> HostEvent:
    """Convert a raw host bus payload to a typed event."""
    event_type = str(data.get("type", ""))
    props = _properties(data)

    if event_type == "session.deleted":
        return SessionDeleted(session_id=_info_id(props))

    part = props.get("part")
    if event_type == "message.part.updated" and isinstance(part, dict):
        delta = props.get("delta")
        return TextDelta(
            session_id=part.get("sessionID"),
            delta=delta if isinstance(delta, str) else "",
            part_type=str(part.get("type", "")),
        )

    session_id = part.get("sessionID") if isinstance(part, dict) else None
    return UnknownEvent(
        event_type=event_type,
        session_id=session_id or _info_id(props),
    )


def chat_message_event(input: dict[str, Any], output: dict[str, Any]) -> ChatMessage:
    parts = output.get("parts")
    return ChatMessage(
        session_id=input.get("sessionID"),
        parts=list(parts) if isinstance(parts, list) else [],
    )


def tool_before_event(input: dict[str, Any], output: dict[str, Any]) -> ToolExecuteBefore:
    args = output.get("args")
    if not isinstance(args, dict):
        args = {}
        output["args"] = args
    return ToolExecuteBefore(
        session_id=input.get("sessionID"),
        tool=str(input.get("tool", "")),
        call_id=str(input.get("callID", "")),
        # Same dict object: mutations are visible to the host
        args=args,
    )


def tool_after_event(input: dict[str, Any], output: dict[str, Any]) -> ToolExecuteAfter:
    raw_output = output.get("output")
    return ToolExecuteAfter(
        session_id=input.get("sessionID"),
        tool=str(input.get("tool", "")),
        call_id=str(input.get("callID", "")),
        title=str(output.get("title", "")),
        output=raw_output if isinstance(raw_output, str) else str(raw_output or ""),
        metadata=output.get("metadata"),
    )
