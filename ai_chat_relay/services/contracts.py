from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any, Protocol

from ai_chat_relay.services.chat_events import IndicatorEvent, MessageUpdate

StopListener = Callable[[Mapping[str, Any]], Awaitable[None] | None]


class ChatClientProtocol(Protocol):
    """Message-update side of the chat-platform client."""

    async def partial_update_message(self, message_id: str, update: MessageUpdate) -> Any:
        """Replace the named fields of a message record; safe to repeat with identical text."""


class ChannelProtocol(Protocol):
    """Channel handle able to emit transient indicator events."""

    async def send_event(self, event: IndicatorEvent) -> Any:
        """Emit an indicator event scoped to a channel and message."""


class SignalBusProtocol(Protocol):
    """Client-scoped publish/subscribe surface carrying ``ai_indicator.stop`` signals."""

    def on(self, event_name: str, listener: StopListener) -> None:
        """Subscribe ``listener`` to ``event_name``."""

    def off(self, event_name: str, listener: StopListener) -> None:
        """Remove a previously subscribed listener; unknown listeners are ignored."""


class AssistantClientProtocol(Protocol):
    """Assistant-provider operations the relay depends on."""

    def stream_run(
        self,
        *,
        thread_id: str,
        assistant_id: str,
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[Any]:
        """Start a run on ``thread_id`` and stream its provider events."""

    def submit_tool_outputs(
        self,
        *,
        thread_id: str,
        run_id: str,
        tool_outputs: list[dict[str, str]],
    ) -> AsyncIterator[Any]:
        """Submit tool outputs for a paused run and stream the continuation events."""

    async def cancel_run(self, run_id: str, *, thread_id: str) -> None:
        """Request cancellation of a provider-side run."""


class WebSearchProtocol(Protocol):
    """Search collaborator returning serialized JSON; never raises."""

    async def search(self, query: str) -> str:
        """Run ``query`` and return a JSON payload or a JSON ``{error, details}`` envelope."""
