"""
Logging configuration and utilities for StakeFlow.

This module provides structured logging configuration with support for console
and JSON output. Library modules obtain loggers through ``get_logger`` and log
events with key/value context.
"""

import logging
import logging.config
import sys
from typing import Optional

import structlog


class LoggingConfig:
    """Centralized logging configuration"""

    _initialized = False

    @classmethod
    def setup_logging(cls,
                      level: str = "INFO",
                      format_type: str = "console",
                      force: bool = False) -> None:
        """
        Setup stdlib logging and structlog for StakeFlow.

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            format_type: Output format ('console', 'json')
            force: Reconfigure even if logging was already set up
        """
        if cls._initialized and not force:
            return

        log_level = getattr(logging, level.upper(), logging.INFO)

        config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'plain': {
                    'format': '%(message)s',
                },
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': log_level,
                    'formatter': 'plain',
                    'stream': sys.stderr,
                },
            },
            'loggers': {
                'stakeflow': {
                    'level': log_level,
                    'handlers': ['console'],
                    'propagate': True,
                },
                'urllib3': {
                    'level': 'WARNING',
                    'handlers': ['console'],
                    'propagate': False,
                },
            },
        }
        logging.config.dictConfig(config)
        setup_structlog(format_type)

        cls._initialized = True


def setup_structlog(format_type: str = "console") -> None:
    """
    Setup structured logging with structlog on top of stdlib logging.

    Args:
        format_type: 'console' for the colored dev renderer, anything else for JSON
    """
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if format_type == "console":
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def setup_stakeflow_logging(level: Optional[str] = None,
                            format_type: Optional[str] = None,
                            force: bool = False) -> None:
    """Setup logging for StakeFlow from the logging settings section."""
    from ..config import get_settings

    log_settings = get_settings().logging
    LoggingConfig.setup_logging(
        level=level or log_settings.level,
        format_type=format_type or log_settings.format,
        force=force,
    )


def get_logger(name: Optional[str] = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name or "stakeflow")
