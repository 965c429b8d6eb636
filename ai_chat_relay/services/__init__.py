"""Service-layer exports for the response relay."""

from ai_chat_relay.services.response_handler import StreamResponseHandler
from ai_chat_relay.services.signal_bus import SignalBus
from ai_chat_relay.services.stream_state import HandlerState

__all__ = ["HandlerState", "SignalBus", "StreamResponseHandler"]
