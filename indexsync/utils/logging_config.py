"""Centralized logging configuration for the sync service."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Any

import structlog


def configure_logging(
    log_level: str = "INFO",
    json_logs: bool = True,
    log_file: str | None = None,
) -> None:
    """
    Configure structured logging for the service.

    Sync runs are triggered from timer threads and webhook requests, so every
    failure must reach this pipeline to be visible to an operator.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_logs: If True, output JSON logs. If False, use console format.
        log_file: Optional path to log file. If None, logs only to stdout.

    Example:
        >>> configure_logging(log_level="DEBUG", json_logs=False)
        >>> log = structlog.stdlib.get_logger()
        >>> log.info("service_started", version="0.1.0")
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        stream=sys.stdout,
    )
    # basicConfig is a no-op once handlers exist (uvicorn, pytest), so set the level directly
    logging.getLogger().setLevel(numeric_level)

    if log_file:
        # Max size: 10MB, keep 5 backup files
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(numeric_level)
        logging.root.addHandler(file_handler)

    processors: list[Any] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.THREAD_NAME,
            ],
        ),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=True,
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name: Optional logger name. If None, uses the calling module's name.

    Returns:
        Configured structlog logger
    """
    return structlog.stdlib.get_logger(name)
