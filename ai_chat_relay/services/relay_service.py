from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
import logging
from typing import Any

from langchain_core.tools import BaseTool

from ai_chat_relay.agents.tools import openai_tool_definitions
from ai_chat_relay.core.settings import Settings
from ai_chat_relay.services.chat_events import TargetMessage
from ai_chat_relay.services.contracts import (
    AssistantClientProtocol,
    ChannelProtocol,
    ChatClientProtocol,
    SignalBusProtocol,
)
from ai_chat_relay.services.response_handler import StreamResponseHandler

logger = logging.getLogger(__name__)


class ResponseRelayService:
    """Owns the live stream handlers, one per assistant message being generated."""

    def __init__(
        self,
        *,
        assistant: AssistantClientProtocol,
        chat_client: ChatClientProtocol,
        signal_bus: SignalBusProtocol,
        settings: Settings,
        tools: Sequence[BaseTool] = (),
    ) -> None:
        self._assistant = assistant
        self._chat_client = chat_client
        self._signal_bus = signal_bus
        self._settings = settings
        self._tools = list(tools)
        self._handlers: dict[str, StreamResponseHandler] = {}
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def active_message_ids(self) -> list[str]:
        return list(self._handlers)

    def get_handler(self, message_id: str) -> StreamResponseHandler | None:
        return self._handlers.get(message_id)

    async def relay(
        self,
        *,
        thread_id: str,
        assistant_stream: AsyncIterator[Any],
        channel: ChannelProtocol,
        message: TargetMessage,
    ) -> StreamResponseHandler:
        previous = self._handlers.get(message.id)
        if previous is not None:
            logger.info("replacing live stream handler", extra={"message_id": message.id})
            await previous.dispose()

        handler: StreamResponseHandler | None = None

        def _release() -> None:
            if self._handlers.get(message.id) is handler:
                self._handlers.pop(message.id, None)

        handler = StreamResponseHandler(
            assistant=self._assistant,
            thread_id=thread_id,
            assistant_stream=assistant_stream,
            chat_client=self._chat_client,
            channel=channel,
            message=message,
            on_dispose=_release,
            signal_bus=self._signal_bus,
            tools=self._tools,
            flush_interval_seconds=self._settings.flush_interval_seconds,
        )
        self._handlers[message.id] = handler

        task = asyncio.create_task(handler.run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        logger.info("relaying assistant response", extra={"message_id": message.id, "thread_id": thread_id})
        return handler

    async def start_response(
        self,
        *,
        thread_id: str,
        channel: ChannelProtocol,
        message: TargetMessage,
        assistant_id: str | None = None,
    ) -> StreamResponseHandler:
        resolved_assistant_id = assistant_id or self._settings.openai_assistant_id
        if not resolved_assistant_id:
            raise ValueError("OPENAI_ASSISTANT_ID required to start an assistant response")

        stream = self._assistant.stream_run(
            thread_id=thread_id,
            assistant_id=resolved_assistant_id,
            tools=openai_tool_definitions(self._tools) or None,
        )
        return await self.relay(thread_id=thread_id, assistant_stream=stream, channel=channel, message=message)

    async def aclose(self) -> None:
        for handler in list(self._handlers.values()):
            await handler.dispose()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("response relay closed")
