"""
Logging utilities for the Fantom search core.

Provides structured logging with JSON output for better observability.
"""

import logging
import sys
from typing import Any, List, Optional

import structlog

from ..config.settings import FantomSettings, get_cached_settings


def setup_logger(name: str, level: str = "INFO", json_logs: bool = True) -> structlog.BoundLogger:
    """
    Set up structured logging for the search core.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Whether to output JSON format logs

    Returns:
        Configured structlog logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    # basicConfig is a no-op once handlers exist; the package level still follows settings
    logging.getLogger("fantom").setLevel(log_level)

    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
    ]
    if json_logs:
        processors += [
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # ConsoleRenderer formats exceptions itself
        processors += [
            structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
            structlog.dev.ConsoleRenderer(),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    return structlog.get_logger(name)


def setup_logger_from_settings(name: str, settings: Optional[FantomSettings] = None) -> structlog.BoundLogger:
    """Configure logging using the level and format from settings."""
    settings = settings or get_cached_settings()
    return setup_logger(name, level=settings.log_level, json_logs=settings.json_logs)
