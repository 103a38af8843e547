"""Structured logging configuration for web3-search."""

import logging
import sys
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

NOISY_LOGGERS = ("web3", "aiohttp", "urllib3", "httpx", "mcp")


class ContextFormatter(logging.Formatter):
    """Formatter appending ``key=value`` context to the message."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)

        context = getattr(record, "context", None)
        if context:
            context_str = " ".join(f"{k}={v}" for k, v in context.items())
            return f"{base} [{context_str}]"

        return base


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    format_str: str | None = None,
    stream: Any = None,
) -> None:
    """Configure logging with console and optional file handlers.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional file path for log output.
        format_str: Custom format string.
        stream: Console stream. Defaults to stdout; the MCP server passes
            stderr since stdout carries the protocol.
    """
    formatter = ContextFormatter(format_str or DEFAULT_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in list(root_logger.handlers):
        if getattr(handler, "_web3_search", False):
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler._web3_search = True  # type: ignore[attr-defined]
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        file_handler._web3_search = True  # type: ignore[attr-defined]
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with name."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Log message with optional key-value context."""
    if context:
        logger.log(level, message, extra={"context": context})
    else:
        logger.log(level, message)
