"""Shared test doubles for the chat-platform and assistant-provider boundaries."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable
from typing import Any

import pytest

from ai_chat_relay.core.settings import Settings
from ai_chat_relay.services.chat_events import TargetMessage
from ai_chat_relay.services.response_handler import StreamResponseHandler
from ai_chat_relay.services.signal_bus import SignalBus


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChatClient:
    """Records partial message updates; optionally fails or blocks on demand."""

    def __init__(self) -> None:
        self.updates: list[tuple[str, dict[str, Any]]] = []
        self.failures: list[Exception] = []
        self.gate: asyncio.Event | None = None

    async def partial_update_message(self, message_id: str, update: dict[str, Any]) -> dict[str, Any]:
        if self.gate is not None:
            await self.gate.wait()
        if self.failures:
            raise self.failures.pop(0)
        self.updates.append((message_id, update))
        return {"message": {"id": message_id}}

    @property
    def texts(self) -> list[str]:
        return [update["set"]["text"] for _, update in self.updates]


class FakeChannel:
    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def send_event(self, event: dict[str, Any]) -> None:
        self.events.append(event)

    @property
    def types(self) -> list[str]:
        return [event["type"] for event in self.events]


class FakeAssistant:
    def __init__(self) -> None:
        self.cancel_calls: list[tuple[str, str]] = []
        self.cancel_error: Exception | None = None
        self.cancel_gate: asyncio.Event | None = None
        self.stream_calls: list[dict[str, Any]] = []
        self.submit_calls: list[dict[str, Any]] = []
        self.run_events: list[Any] = []
        self.continuation_events: list[Any] = []

    def stream_run(self, *, thread_id: str, assistant_id: str, tools: list[dict[str, Any]] | None = None):
        self.stream_calls.append({"thread_id": thread_id, "assistant_id": assistant_id, "tools": tools})
        return event_stream(self.run_events)

    def submit_tool_outputs(self, *, thread_id: str, run_id: str, tool_outputs: list[dict[str, str]]):
        self.submit_calls.append({"thread_id": thread_id, "run_id": run_id, "tool_outputs": tool_outputs})
        return event_stream(self.continuation_events)

    async def cancel_run(self, run_id: str, *, thread_id: str) -> None:
        self.cancel_calls.append((run_id, thread_id))
        if self.cancel_gate is not None:
            await self.cancel_gate.wait()
        if self.cancel_error is not None:
            raise self.cancel_error


class DisposeRecorder:
    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


async def event_stream(events: Iterable[Any], *, clock: FakeClock | None = None, step: float = 0.0) -> AsyncIterator[Any]:
    for event in events:
        if clock is not None:
            clock.advance(step)
        if isinstance(event, Exception):
            raise event
        yield event


def run_created(run_id: str = "run-1") -> dict[str, Any]:
    return {"event": "thread.run.created", "data": {"id": run_id, "object": "thread.run"}}


def message_delta(text: str) -> dict[str, Any]:
    return {
        "event": "thread.message.delta",
        "data": {"delta": {"content": [{"index": 0, "type": "text", "text": {"value": text}}]}},
    }


def message_completed(text: str | None = None, *, content_type: str = "text") -> dict[str, Any]:
    content = [] if text is None else [{"type": content_type, "text": {"value": text, "annotations": []}}]
    return {"event": "thread.message.completed", "data": {"id": "msg_provider", "content": content}}


def step_created(step_type: str = "message_creation") -> dict[str, Any]:
    return {"event": "thread.run.step.created", "data": {"step_details": {"type": step_type}}}


def requires_action(run_id: str, *calls: tuple[str, str, str]) -> dict[str, Any]:
    return {
        "event": "thread.run.requires_action",
        "data": {
            "id": run_id,
            "required_action": {
                "type": "submit_tool_outputs",
                "submit_tool_outputs": {
                    "tool_calls": [
                        {"id": call_id, "type": "function", "function": {"name": name, "arguments": arguments}}
                        for call_id, name, arguments in calls
                    ]
                },
            },
        },
    }


@pytest.fixture
def chat_client() -> FakeChatClient:
    return FakeChatClient()


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def assistant() -> FakeAssistant:
    return FakeAssistant()


@pytest.fixture
def signal_bus() -> SignalBus:
    return SignalBus()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def on_dispose() -> DisposeRecorder:
    return DisposeRecorder()


@pytest.fixture
def target_message() -> TargetMessage:
    return TargetMessage(id="msg-1", cid="messaging:general")


@pytest.fixture
def test_settings() -> Settings:
    return Settings()


@pytest.fixture
def build_handler(assistant, chat_client, channel, signal_bus, clock, on_dispose, target_message):
    """Factory for handlers bound to the shared fakes."""

    def _build(stream: AsyncIterator[Any], **overrides: Any) -> StreamResponseHandler:
        options: dict[str, Any] = {
            "assistant": assistant,
            "thread_id": "thread-1",
            "assistant_stream": stream,
            "chat_client": chat_client,
            "channel": channel,
            "message": target_message,
            "on_dispose": on_dispose,
            "signal_bus": signal_bus,
            "clock": clock,
        }
        options.update(overrides)
        return StreamResponseHandler(**options)

    return _build
