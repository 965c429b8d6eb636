import logging

from ai_chat_relay.core.logging import configure_logging
from ai_chat_relay.core.settings import Settings, get_settings
from ai_chat_relay.dependency_injection import build_container, register_chat_client
from ai_chat_relay.services.contracts import ChatClientProtocol
from ai_chat_relay.services.relay_service import ResponseRelayService

logger = logging.getLogger(__name__)


def build_relay(chat_client: ChatClientProtocol, settings: Settings | None = None) -> ResponseRelayService:
    """Assemble a response relay bound to an already authenticated chat client."""

    settings = settings or get_settings()
    configure_logging(settings.effective_log_level)

    container = build_container(settings)
    register_chat_client(container, chat_client)
    logger.info("response relay ready", extra={"app_env": settings.app_env})
    return container.resolve(ResponseRelayService)
