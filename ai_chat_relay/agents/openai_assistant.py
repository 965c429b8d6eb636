from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass
import logging
from typing import Any

from openai import APIError, APIStatusError, APITimeoutError, AsyncOpenAI, RateLimitError

logger = logging.getLogger(__name__)


@dataclass
class AssistantClientError(Exception):
    status_code: int
    message: str


def _map_error(exc: Exception) -> AssistantClientError:
    if isinstance(exc, APITimeoutError):
        return AssistantClientError(status_code=504, message=str(exc))
    if isinstance(exc, RateLimitError):
        return AssistantClientError(status_code=429, message=str(exc))
    if isinstance(exc, APIStatusError):
        status = exc.status_code
        mapped_status = 502 if status and status >= 500 else (status or 502)
        return AssistantClientError(status_code=mapped_status, message=str(exc))
    return AssistantClientError(status_code=502, message=str(exc))


class OpenAIAssistantClient:
    """Assistants API adapter over the async openai SDK."""

    def __init__(
        self,
        api_key: str | None,
        timeout_seconds: float = 60.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout_seconds)

    async def create_thread(self) -> str:
        try:
            thread = await self._client.beta.threads.create()
        except APIError as exc:
            raise _map_error(exc) from exc
        return thread.id

    async def add_user_message(self, thread_id: str, text: str) -> str:
        try:
            message = await self._client.beta.threads.messages.create(thread_id, role="user", content=text)
        except APIError as exc:
            raise _map_error(exc) from exc
        return message.id

    async def stream_run(
        self,
        *,
        thread_id: str,
        assistant_id: str,
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[Any]:
        options: dict[str, Any] = {"thread_id": thread_id, "assistant_id": assistant_id}
        if tools:
            options["tools"] = tools
        try:
            async with self._client.beta.threads.runs.stream(**options) as stream:
                async for event in stream:
                    yield event
        except APIError as exc:
            raise _map_error(exc) from exc

    async def submit_tool_outputs(
        self,
        *,
        thread_id: str,
        run_id: str,
        tool_outputs: list[dict[str, str]],
    ) -> AsyncIterator[Any]:
        try:
            async with self._client.beta.threads.runs.submit_tool_outputs_stream(
                run_id=run_id,
                thread_id=thread_id,
                tool_outputs=tool_outputs,
            ) as stream:
                async for event in stream:
                    yield event
        except APIError as exc:
            raise _map_error(exc) from exc

    async def cancel_run(self, run_id: str, *, thread_id: str) -> None:
        logger.debug("cancelling assistant run", extra={"run_id": run_id, "thread_id": thread_id})
        try:
            await self._client.beta.threads.runs.cancel(run_id, thread_id=thread_id)
        except APIError as exc:
            raise _map_error(exc) from exc
