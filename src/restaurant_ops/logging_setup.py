"""Shared logging setup for the worker and CLI entry points."""

import logging

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
    # httpx logs every request at INFO, which would echo the bot token in URLs.
    logging.getLogger("httpx").setLevel(logging.WARNING)
