"""Logging setup for the workspace home service.

loguru is the only sink.  Records emitted through stdlib ``logging``
(uvicorn, httpx) are forwarded to it, so submissions, backend calls and
server events end up in one stream.
"""

from __future__ import annotations

import logging
import sys

from loguru import logger

_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)

# Client and access logs duplicate what HttpWorkspaceServices and the
# routers already report.
_CHATTY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")


class _StdlibForwarder(logging.Handler):
    """Re-emit stdlib log records through loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so the record points at the caller.
        frame, depth = logging.currentframe(), 2
        while frame is not None and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = "INFO", *, json: bool = False) -> None:
    """Route all logging to stderr through loguru.

    *json* switches to loguru's serialized records, one JSON object per
    line.  Call once at startup, before uvicorn begins serving.
    """
    level = level.upper()

    logger.remove()
    if json:
        logger.add(sys.stderr, level=level, serialize=True)
    else:
        logger.add(sys.stderr, level=level, format=_FORMAT)

    logging.basicConfig(handlers=[_StdlibForwarder()], level=0, force=True)

    chatty_level = logging.DEBUG if level == "TRACE" else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(chatty_level)

    logger.info("Logging initialised (level={}, json={})", level, json)
