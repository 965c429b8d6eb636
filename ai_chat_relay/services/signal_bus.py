from __future__ import annotations

from collections.abc import Mapping
import inspect
import logging
from typing import Any

from ai_chat_relay.services.contracts import StopListener

logger = logging.getLogger(__name__)


class SignalBus:
    """In-process publish/subscribe bus for client-scoped chat signals."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[StopListener]] = {}

    def on(self, event_name: str, listener: StopListener) -> None:
        self._listeners.setdefault(event_name, []).append(listener)

    def off(self, event_name: str, listener: StopListener) -> None:
        listeners = self._listeners.get(event_name)
        if not listeners:
            return
        try:
            listeners.remove(listener)
        except ValueError:
            return
        if not listeners:
            self._listeners.pop(event_name, None)

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))

    async def emit(self, event_name: str, event: Mapping[str, Any]) -> None:
        # Snapshot so listeners can unsubscribe while being notified.
        for listener in list(self._listeners.get(event_name, ())):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "signal listener failed",
                    extra={"event_name": event_name, "message_id": event.get("message_id")},
                )
