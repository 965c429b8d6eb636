from ai_chat_relay.agents.tools.web import TavilyWebSearch, build_web_tools, openai_tool_definitions

__all__ = [
    "TavilyWebSearch",
    "build_web_tools",
    "openai_tool_definitions",
]
