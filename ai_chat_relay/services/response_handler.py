from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Mapping, Sequence
import json
import logging
import time
from typing import Any

from langchain_core.tools import BaseTool

from ai_chat_relay.agents.assistant_events import (
    MESSAGE_COMPLETED,
    MESSAGE_DELTA,
    RUN_CREATED,
    RUN_REQUIRES_ACTION,
    RUN_STEP_CREATED,
    completed_text,
    delta_text,
    event_kind,
    is_message_creation_step,
    required_tool_calls,
    run_id_of,
)
from ai_chat_relay.services.chat_events import (
    AI_INDICATOR_STOP,
    AI_STATE_ERROR,
    AI_STATE_EXTERNAL_SOURCES,
    AI_STATE_GENERATING,
    TargetMessage,
    indicator_clear,
    indicator_update,
    text_update,
)
from ai_chat_relay.services.contracts import (
    AssistantClientProtocol,
    ChannelProtocol,
    ChatClientProtocol,
    SignalBusProtocol,
)
from ai_chat_relay.services.stream_state import HandlerState, HandlerStateMachine

logger = logging.getLogger(__name__)

ERROR_FALLBACK_TEXT = "Error generating the message"
DEFAULT_FLUSH_INTERVAL_SECONDS = 1.0


class StreamResponseHandler:
    """Reduces one assistant event stream into updates of a single chat message.

    Partial text is pushed at most once per flush interval; the completion update is
    always pushed. Teardown is reachable from completion, a matching stop signal, or an
    error, and runs exactly once.
    """

    def __init__(
        self,
        *,
        assistant: AssistantClientProtocol,
        thread_id: str,
        assistant_stream: AsyncIterator[Any],
        chat_client: ChatClientProtocol,
        channel: ChannelProtocol,
        message: TargetMessage,
        on_dispose: Callable[[], None],
        signal_bus: SignalBusProtocol,
        tools: Sequence[BaseTool] = (),
        flush_interval_seconds: float = DEFAULT_FLUSH_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._assistant = assistant
        self._thread_id = thread_id
        self._assistant_stream = assistant_stream
        self._chat_client = chat_client
        self._channel = channel
        self._message = message
        self._on_dispose = on_dispose
        self._signal_bus = signal_bus
        self._tools = {tool.name: tool for tool in tools}
        self._flush_interval = flush_interval_seconds
        self._clock = clock

        self._machine = HandlerStateMachine()
        self._accumulated_text = ""
        self._chunk_count = 0
        self._run_id = ""
        self._last_flush_time = clock()
        self._pending_updates: set[asyncio.Task[Any]] = set()
        self._run_task: asyncio.Task[Any] | None = None
        self._stopped_by_dispose = False

        self._signal_bus.on(AI_INDICATOR_STOP, self._handle_stop_generating)
        logger.debug("stream response handler created", extra={"message_id": message.id})

    @property
    def message_id(self) -> str:
        return self._message.id

    @property
    def state(self) -> HandlerState:
        return self._machine.state

    @property
    def done(self) -> bool:
        return not self._machine.is_live

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def accumulated_text(self) -> str:
        return self._accumulated_text

    @property
    def chunk_count(self) -> int:
        return self._chunk_count

    async def run(self) -> None:
        if not self._machine.is_live:
            return

        self._run_task = asyncio.current_task()
        try:
            await self._consume(self._assistant_stream)
            if self._machine.is_live:
                # Stream ended without a completion event.
                await self._complete(None, push_text=bool(self._accumulated_text))
        except asyncio.CancelledError:
            if not self._stopped_by_dispose:
                raise
            current = asyncio.current_task()
            if current is not None:
                current.uncancel()
            logger.debug("assistant stream consumption stopped", extra={"message_id": self.message_id})
        except Exception as exc:
            logger.exception("assistant stream failed", extra={"message_id": self.message_id})
            await self._handle_error(exc)
        finally:
            self._run_task = None
            # The stop path disposes on its own once its indicator-clear is sent.
            if self._machine.state is not HandlerState.CANCELLED:
                await self.dispose()

    async def dispose(self) -> None:
        if not self._machine.try_transition(HandlerState.DISPOSED):
            return

        self._signal_bus.off(AI_INDICATOR_STOP, self._handle_stop_generating)
        run_task = self._run_task
        if run_task is not None and run_task is not asyncio.current_task() and not run_task.done():
            self._stopped_by_dispose = True
            run_task.cancel()
        try:
            self._on_dispose()
        except Exception:
            logger.exception("dispose callback failed", extra={"message_id": self.message_id})
        logger.debug(
            "stream response handler disposed",
            extra={"message_id": self.message_id, "chunk_count": self._chunk_count},
        )

    async def _consume(self, stream: AsyncIterator[Any]) -> None:
        try:
            async for event in stream:
                if not self._machine.is_live:
                    break
                self._machine.try_transition(HandlerState.STREAMING)
                continuation = await self._handle_stream_event(event)
                if continuation is not None:
                    await self._consume(continuation)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _handle_stream_event(self, event: Any) -> AsyncIterator[Any] | None:
        kind = event_kind(event)
        if kind == RUN_CREATED:
            if not self._run_id:
                self._run_id = run_id_of(event)
                logger.debug("assistant run created", extra={"message_id": self.message_id, "run_id": self._run_id})
        elif kind == MESSAGE_DELTA:
            self._append_delta(delta_text(event))
        elif kind == MESSAGE_COMPLETED:
            await self._complete(completed_text(event))
        elif kind == RUN_STEP_CREATED:
            if is_message_creation_step(event):
                await self._channel.send_event(
                    indicator_update(cid=self._message.cid, message_id=self.message_id, ai_state=AI_STATE_GENERATING)
                )
        elif kind == RUN_REQUIRES_ACTION:
            return await self._run_tools(event)
        return None

    def _append_delta(self, text: str) -> None:
        # Every message-delta counts, including ones carrying only non-text content.
        self._chunk_count += 1
        if not text:
            return
        self._accumulated_text += text

        now = self._clock()
        if now - self._last_flush_time > self._flush_interval:
            self._last_flush_time = now
            self._schedule_partial_update(self._accumulated_text)

    def _schedule_partial_update(self, text: str) -> None:
        task = asyncio.create_task(self._chat_client.partial_update_message(self.message_id, text_update(text)))
        self._pending_updates.add(task)
        task.add_done_callback(self._on_partial_update_done)

    def _on_partial_update_done(self, task: asyncio.Task[Any]) -> None:
        self._pending_updates.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("partial message update failed", extra={"message_id": self.message_id}, exc_info=exc)

    async def _settle_partial_updates(self) -> None:
        """Wait for in-flight partial pushes so none can land after a terminal update."""

        if self._pending_updates:
            await asyncio.gather(*self._pending_updates, return_exceptions=True)

    async def _complete(self, final_text: str | None, *, push_text: bool = True) -> None:
        if not self._machine.try_transition(HandlerState.COMPLETED):
            return

        text = final_text if final_text is not None else self._accumulated_text
        try:
            await self._settle_partial_updates()
            if push_text:
                await self._chat_client.partial_update_message(self.message_id, text_update(text))
            await self._channel.send_event(indicator_clear(cid=self._message.cid, message_id=self.message_id))
        except Exception as exc:
            logger.exception("failed to publish final message", extra={"message_id": self.message_id})
            await self._handle_error(exc)
            return

        logger.info(
            "assistant message completed",
            extra={"message_id": self.message_id, "run_id": self._run_id, "chunk_count": self._chunk_count},
        )
        await self.dispose()

    async def _run_tools(self, event: Any) -> AsyncIterator[Any] | None:
        calls = required_tool_calls(event)
        if not calls:
            return None
        run_id = run_id_of(event) or self._run_id

        await self._channel.send_event(
            indicator_update(cid=self._message.cid, message_id=self.message_id, ai_state=AI_STATE_EXTERNAL_SOURCES)
        )
        tool_outputs = [{"tool_call_id": call["id"], "output": await self._invoke_tool(call)} for call in calls]
        if not self._machine.is_live:
            return None
        return self._assistant.submit_tool_outputs(thread_id=self._thread_id, run_id=run_id, tool_outputs=tool_outputs)

    async def _invoke_tool(self, call: Mapping[str, Any]) -> str:
        name = call["name"]
        tool = self._tools.get(name)
        if tool is None:
            logger.warning("assistant requested unknown tool", extra={"message_id": self.message_id, "tool": name})
            return json.dumps({"error": f"Unknown tool: {name}"})
        if call["arguments"] is None:
            return json.dumps({"error": f"Invalid arguments for tool: {name}"})

        try:
            result = await tool.ainvoke(call["arguments"])
        except Exception as exc:
            logger.exception("tool call failed", extra={"message_id": self.message_id, "tool": name})
            return json.dumps({"error": "Tool call failed", "details": str(exc)})
        return result if isinstance(result, str) else json.dumps(result)

    async def _handle_stop_generating(self, event: Mapping[str, Any]) -> None:
        if event.get("message_id") != self.message_id:
            return
        if not self._machine.try_transition(HandlerState.CANCELLED):
            return

        logger.info("stopping generation", extra={"message_id": self.message_id, "run_id": self._run_id})
        await self._cancel_run()
        try:
            await self._channel.send_event(indicator_clear(cid=self._message.cid, message_id=self.message_id))
        except Exception:
            logger.exception("failed to clear indicator", extra={"message_id": self.message_id})
        await self.dispose()

    async def _cancel_run(self) -> None:
        if not self._run_id:
            logger.info("no assistant run to cancel", extra={"message_id": self.message_id})
            return
        try:
            await self._assistant.cancel_run(self._run_id, thread_id=self._thread_id)
        except Exception:
            logger.exception("failed to cancel run", extra={"message_id": self.message_id, "run_id": self._run_id})

    async def _handle_error(self, error: BaseException) -> None:
        if not self._machine.try_transition(HandlerState.ERRORED):
            return

        try:
            await self._channel.send_event(
                indicator_update(cid=self._message.cid, message_id=self.message_id, ai_state=AI_STATE_ERROR)
            )
        except Exception:
            logger.exception("failed to send error indicator", extra={"message_id": self.message_id})
        try:
            await self._settle_partial_updates()
            await self._chat_client.partial_update_message(
                self.message_id,
                text_update(str(error) or ERROR_FALLBACK_TEXT, message=f"{type(error).__name__}: {error}"),
            )
        except Exception:
            logger.exception("failed to publish error message", extra={"message_id": self.message_id})
        await self.dispose()
