from __future__ import annotations

from typing import Any

from langchain_core.tools import BaseTool, StructuredTool
from langchain_core.utils.function_calling import convert_to_openai_tool

from ai_chat_relay.services.contracts import WebSearchProtocol


def build_web_tools(*, web_search: WebSearchProtocol) -> list[StructuredTool]:
    """Build assistant-callable web tools with stable contracts."""

    async def _web_search_tool(query: str) -> str:
        return await web_search.search(query)

    return [
        StructuredTool.from_function(
            coroutine=_web_search_tool,
            name="web_search",
            description=(
                "Search the web for current information. Use for recent events, niche facts, or when "
                "the user asks for sources. Returns a JSON payload with an answer and result snippets."
            ),
        ),
    ]


def openai_tool_definitions(tools: list[BaseTool]) -> list[dict[str, Any]]:
    """Convert tools into the assistant API's function-tool schema."""

    return [convert_to_openai_tool(tool) for tool in tools]
