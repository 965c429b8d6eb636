import logging

# Client libraries that log every request at INFO while a response is streaming.
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai")


def configure_logging(log_level: str) -> None:
    """Configure process-wide logging for the relay.

    Request-level chatter from the HTTP and assistant SDK clients only surfaces at DEBUG.
    """

    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    client_level = logging.DEBUG if level <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(client_level)
