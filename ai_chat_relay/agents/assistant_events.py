"""Readers for assistant stream events.

The readers accept both openai SDK event objects and their plain ``dict`` shape so the
relay can be driven by recorded or synthetic streams.
"""

from __future__ import annotations

import json
from typing import Any

RUN_CREATED = "thread.run.created"
RUN_REQUIRES_ACTION = "thread.run.requires_action"
RUN_STEP_CREATED = "thread.run.step.created"
MESSAGE_DELTA = "thread.message.delta"
MESSAGE_COMPLETED = "thread.message.completed"


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def event_kind(event: Any) -> str:
    return str(_field(event, "event") or "")


def run_id_of(event: Any) -> str:
    run_id = _field(_field(event, "data"), "id")
    return run_id if isinstance(run_id, str) else ""


def delta_text(event: Any) -> str:
    delta = _field(_field(event, "data"), "delta")
    content = _field(delta, "content")
    if not isinstance(content, list):
        return ""

    parsed: list[str] = []
    for item in content:
        if _field(item, "type") != "text":
            continue
        value = _field(_field(item, "text"), "value")
        if isinstance(value, str):
            parsed.append(value)
    return "".join(parsed)


def completed_text(event: Any) -> str | None:
    """Return the first content block's text, or ``None`` when it is missing or not text."""

    content = _field(_field(event, "data"), "content")
    if not isinstance(content, list) or not content:
        return None

    first = content[0]
    if _field(first, "type") != "text":
        return None
    value = _field(_field(first, "text"), "value")
    return value if isinstance(value, str) else None


def is_message_creation_step(event: Any) -> bool:
    step_details = _field(_field(event, "data"), "step_details")
    return _field(step_details, "type") == "message_creation"


def required_tool_calls(event: Any) -> list[dict[str, Any]]:
    """Extract ``{id, name, arguments}`` for each function call a paused run requests."""

    required_action = _field(_field(event, "data"), "required_action")
    tool_calls = _field(_field(required_action, "submit_tool_outputs"), "tool_calls")
    if not isinstance(tool_calls, list):
        return []

    parsed: list[dict[str, Any]] = []
    for call in tool_calls:
        call_id = _field(call, "id")
        function = _field(call, "function")
        if not isinstance(call_id, str) or function is None:
            continue
        raw_arguments = _field(function, "arguments")
        try:
            arguments = json.loads(raw_arguments) if isinstance(raw_arguments, str) and raw_arguments else {}
        except json.JSONDecodeError:
            arguments = None
        parsed.append(
            {
                "id": call_id,
                "name": str(_field(function, "name") or ""),
                "arguments": arguments if isinstance(arguments, dict) else None,
            }
        )
    return parsed
