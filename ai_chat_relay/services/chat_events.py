from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal, NotRequired, TypedDict

AI_INDICATOR_UPDATE = "ai_indicator.update"
AI_INDICATOR_CLEAR = "ai_indicator.clear"
AI_INDICATOR_STOP = "ai_indicator.stop"

AIState = Literal["AI_STATE_GENERATING", "AI_STATE_EXTERNAL_SOURCES", "AI_STATE_ERROR"]

AI_STATE_GENERATING: AIState = "AI_STATE_GENERATING"
AI_STATE_EXTERNAL_SOURCES: AIState = "AI_STATE_EXTERNAL_SOURCES"
AI_STATE_ERROR: AIState = "AI_STATE_ERROR"

IndicatorEventType = Literal["ai_indicator.update", "ai_indicator.clear"]


class IndicatorEvent(TypedDict):
    type: IndicatorEventType
    cid: str
    message_id: str
    ai_state: NotRequired[AIState]


class MessageUpdate(TypedDict):
    set: dict[str, str]


def indicator_update(*, cid: str, message_id: str, ai_state: AIState) -> IndicatorEvent:
    return {"type": AI_INDICATOR_UPDATE, "ai_state": ai_state, "cid": cid, "message_id": message_id}


def indicator_clear(*, cid: str, message_id: str) -> IndicatorEvent:
    return {"type": AI_INDICATOR_CLEAR, "cid": cid, "message_id": message_id}


def text_update(text: str, **fields: str) -> MessageUpdate:
    return {"set": {"text": text, **fields}}


@dataclass(frozen=True)
class TargetMessage:
    """Chat message record a streaming response is written into."""

    id: str
    cid: str

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> TargetMessage:
        message_id = payload.get("id")
        cid = payload.get("cid")
        if not isinstance(message_id, str) or not message_id:
            raise ValueError("message payload requires a non-empty id")
        if not isinstance(cid, str) or not cid:
            raise ValueError("message payload requires a non-empty cid")
        return cls(id=message_id, cid=cid)
