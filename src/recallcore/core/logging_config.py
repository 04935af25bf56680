"""
RecallCore Logging Configuration
================================
Centralized logging configuration using loguru.

Provides:
  - configure_logging(): Setup function called by the host at startup
  - JSON log format when RECALL_LOG_JSON / json_format is set
  - Consistent logging across all modules

Usage:
    from recallcore.core.logging_config import configure_logging

    # At application startup:
    configure_logging(level="INFO", json_format=False)
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from loguru import logger

from recallcore.core.config import get_config

# Track if logging has been configured
_CONFIGURED = False


def configure_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    *,
    sink=None,
) -> int:
    """
    Configure loguru logging for RecallCore.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            If None, the configured ``logging.level`` is used.
        json_format: If True, emit one JSON object per record.
            If None, the configured ``logging.json_format`` is used.
        sink: Optional file path or stream. If None, logs to stderr.

    Returns:
        The loguru handler id.
    """
    global _CONFIGURED

    config = get_config().logging
    if level is None:
        level = config.level
    if json_format is None:
        json_format = config.json_format

    # Remove existing handlers
    logger.remove()

    log_sink = sink if sink is not None else sys.stderr

    if json_format:
        handler_id = logger.add(
            log_sink,
            level=level.upper(),
            serialize=True,
            enqueue=True,  # Thread-safe
        )
    else:
        # Human-readable format for development
        format_str = (
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        )
        handler_id = logger.add(
            log_sink,
            level=level.upper(),
            format=format_str,
            colorize=sink is None,
            enqueue=True,  # Thread-safe
            backtrace=True,
            diagnose=False,
        )

    _intercept_standard_logging()

    _CONFIGURED = True
    logger.debug(f"Logging configured: level={level}, json_format={json_format}")
    return handler_id


def _intercept_standard_logging() -> None:
    """
    Intercept standard library logging and redirect to loguru.

    Hosts that log through the stdlib end up in the same sink.
    """

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            try:
                log_level = logger.level(record.levelname).name
            except ValueError:
                log_level = record.levelno

            frame, depth = logging.currentframe(), 2
            while frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back  # type: ignore
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(
                log_level, record.getMessage()
            )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def is_configured() -> bool:
    return _CONFIGURED


__all__ = ["configure_logging", "is_configured", "logger"]
