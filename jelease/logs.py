"""Logging setup for the server and CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "jelease"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Send jelease logs to stderr through rich. Safe to call more than once."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=True, rich_tracebacks=True)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        logger.addHandler(handler)
    return logger
