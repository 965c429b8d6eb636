"""Dependency injection container assembly utilities."""

from ai_chat_relay.dependency_injection.container import build_container, register_chat_client

__all__ = ["build_container", "register_chat_client"]
