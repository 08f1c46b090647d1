"""Logging configuration using loguru.

Every stdlib logger (uvicorn, httpx, openai, pydantic-ai and the execution
modules) is routed into loguru.  The HTTP server gets the full timestamped
format; the terminal front-ends get a compact one so log lines do not drown
the conversation.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

SERVER_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
TERMINAL_FORMAT = "<level>{level: <8}</level> | <level>{message}</level>"

# Libraries that log every request at INFO.
_CHATTY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "openai")


class _InterceptHandler(logging.Handler):
    """Forward stdlib records to loguru, keeping the original call-site."""

    def emit(self, record: logging.LogRecord) -> None:
        level: str | int
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, terminal: bool = False) -> None:
    """Make loguru the only sink.

    Pass ``terminal=True`` for the REPL commands.  Call once per process,
    before uvicorn or the REPL starts.
    """
    level = level.upper()

    logger.remove()
    logger.add(sys.stderr, level=level, format=TERMINAL_FORMAT if terminal else SERVER_FORMAT)

    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger.debug("Logging initialised (level={}, terminal={})", level, terminal)
