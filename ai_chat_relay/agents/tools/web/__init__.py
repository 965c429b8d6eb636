from ai_chat_relay.agents.tools.web.provider import WEB_SEARCH_UNAVAILABLE, TavilyWebSearch
from ai_chat_relay.agents.tools.web.tooling import build_web_tools, openai_tool_definitions

__all__ = [
    "TavilyWebSearch",
    "WEB_SEARCH_UNAVAILABLE",
    "build_web_tools",
    "openai_tool_definitions",
]
