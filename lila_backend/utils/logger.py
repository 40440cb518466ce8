"""Loguru setup for the Lila backend.

All output goes through Loguru: a console sink, an optional rotating file
sink, and a bridge that forwards standard ``logging`` records into the
same sinks.  uvicorn is started with ``log_config=None``, so its loggers
are routed here too and filtered at ``LOG_LEVEL`` like everything else.
"""

from __future__ import annotations

import sys
import logging
from pathlib import Path

from loguru import logger

from ..config.app_config import AppConfig, get_app_config

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)

# Library loggers that install their own handlers or levels
BRIDGED_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx")


class LoguruHandler(logging.Handler):
    """Forward standard logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Skip logging's own frames so Loguru reports the real caller
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def bridge_stdlib_logging(level: str) -> None:
    """Send stdlib records at ``level`` or above to Loguru."""
    levelno = logger.level(level).no
    logging.basicConfig(handlers=[LoguruHandler()], level=levelno, force=True)
    for name in BRIDGED_LOGGERS:
        library_logger = logging.getLogger(name)
        library_logger.handlers = []
        library_logger.setLevel(levelno)
        library_logger.propagate = True


def setup_logging(app_config: AppConfig | None = None) -> "loguru.Logger":
    """Install the Loguru sinks and the stdlib bridge.

    Safe to call more than once; each call replaces the previous sinks.
    """
    app_config = app_config or get_app_config()

    logger.remove()
    logger.add(
        sys.stdout,
        level=app_config.log_level,
        format=LOG_FORMAT,
        colorize=True,
        backtrace=True,
        diagnose=app_config.app_debug,
    )
    if app_config.log_file:
        Path(app_config.log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            app_config.log_file,
            level=app_config.log_level,
            format=LOG_FORMAT,
            rotation="10 MB",
            retention="30 days",
            compression="zip",
            backtrace=True,
            diagnose=app_config.app_debug,
        )

    bridge_stdlib_logging(app_config.log_level)

    logger.debug("Logging at {} for {} environment", app_config.log_level, app_config.app_env)
    return logger
