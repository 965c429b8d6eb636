from __future__ import annotations

import punq

from ai_chat_relay.agents.openai_assistant import OpenAIAssistantClient
from ai_chat_relay.agents.tools import TavilyWebSearch, build_web_tools
from ai_chat_relay.core.settings import Settings
from ai_chat_relay.services.contracts import (
    AssistantClientProtocol,
    ChatClientProtocol,
    SignalBusProtocol,
    WebSearchProtocol,
)
from ai_chat_relay.services.relay_service import ResponseRelayService
from ai_chat_relay.services.signal_bus import SignalBus


def build_container(settings: Settings) -> punq.Container:
    container = punq.Container()
    container.register(Settings, instance=settings)

    container.register(SignalBusProtocol, factory=SignalBus, scope=punq.Scope.singleton)
    container.register(
        WebSearchProtocol,
        factory=lambda: TavilyWebSearch(
            api_key=settings.tavily_api_key,
            url=settings.web_search_url,
            max_results=settings.web_search_max_results,
            search_depth=settings.web_search_depth,
            timeout_seconds=settings.web_search_timeout_seconds,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        AssistantClientProtocol,
        factory=lambda: OpenAIAssistantClient(
            api_key=settings.openai_api_key,
            timeout_seconds=settings.openai_timeout_seconds,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(
        ResponseRelayService,
        factory=lambda: ResponseRelayService(
            assistant=container.resolve(AssistantClientProtocol),
            chat_client=container.resolve(ChatClientProtocol),
            signal_bus=container.resolve(SignalBusProtocol),
            settings=settings,
            tools=build_web_tools(web_search=container.resolve(WebSearchProtocol)),
        ),
        scope=punq.Scope.singleton,
    )

    return container


def register_chat_client(container: punq.Container, client: ChatClientProtocol) -> None:
    container.register(ChatClientProtocol, instance=client)
