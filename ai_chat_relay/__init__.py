"""Relay of streaming assistant responses into chat-platform messages."""
