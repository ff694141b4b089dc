"""Tests for resolving raw host payloads into typed events."""
from __future__ import annotations

from littlebrother.adapters.events import (
    ChatMessage,
    SessionDeleted,
    TextDelta,
    UnknownEvent,
    chat_message_event,
    dict_to_event,
    tool_after_event,
    tool_before_event,
)


def test_part_updated_becomes_text_delta() -> None:
    event = dict_to_event({
        "type": "message.part.updated",
        "properties": {
            "part": {"sessionID": "ses_1", "type": "text", "text": "hello wor"},
            "delta": "wor",
        },
    })
    assert isinstance(event, TextDelta)
    assert event.session_id == "ses_1"
    assert event.delta == "wor"
    assert event.part_type == "text"


def test_part_updated_without_delta() -> None:
    event = dict_to_event({
        "type": "message.part.updated",
        "properties": {"part": {"sessionID": "ses_1", "type": "reasoning"}},
    })
    assert isinstance(event, TextDelta)
    assert event.delta == ""
    assert event.part_type == "reasoning"


def test_session_deleted() -> None:
    event = dict_to_event({
        "type": "session.deleted",
        "properties": {"info": {"id": "ses_9", "title": "x"}},
    })
    assert isinstance(event, SessionDeleted)
    assert event.session_id == "ses_9"


def test_other_events_are_unknown() -> None:
    event = dict_to_event({"type": "session.idle", "properties": {"sessionID": "s"}})
    assert isinstance(event, UnknownEvent)
    assert event.event_type == "session.idle"


def test_malformed_payload() -> None:
    event = dict_to_event({"properties": "nope"})
    assert isinstance(event, UnknownEvent)
    assert event.session_id is None


def test_chat_message_event() -> None:
    event = chat_message_event(
        {"sessionID": "s1", "agent": "build"},
        {"message": {}, "parts": [{"type": "text", "text": "fix it"}]},
    )
    assert isinstance(event, ChatMessage)
    assert event.session_id == "s1"
    assert event.parts == [{"type": "text", "text": "fix it"}]


def test_tool_before_shares_args() -> None:
    output = {"args": {"command": "ls"}}
    event = tool_before_event({"tool": "bash", "sessionID": "s1", "callID": "c1"}, output)
    event.args["command"] = "ls -la"
    assert output["args"]["command"] == "ls -la"
    assert event.call_id == "c1"


def test_tool_before_missing_args() -> None:
    output: dict = {}
    event = tool_before_event({"tool": "bash", "sessionID": "s1"}, output)
    assert event.args == {}
    assert output["args"] is event.args


def test_tool_after_event() -> None:
    event = tool_after_event(
        {"tool": "read", "sessionID": "s1", "callID": "c2"},
        {"title": "a.py", "output": "contents", "metadata": {"lines": 3}},
    )
    assert event.tool == "read"
    assert event.output == "contents"
    assert event.metadata == {"lines": 3}


def test_tool_after_non_string_output() -> None:
    event = tool_after_event({"tool": "x", "sessionID": "s"}, {"output": None})
    assert event.output == ""
