"""Structured logging with correlation ID propagation.

Configures structlog with:
- Automatic correlation ID injection into all log entries
- Component context for log filtering
- JSON output for production, console output for development

Usage:
    from subwatch.observability.logging import get_logger, configure_logging

    # Configure at application startup
    configure_logging(level="INFO")

    # Get logger with component context
    logger = get_logger("notification_scheduler")
    logger.info("notification_scheduled", notification_id="123")

    # Output includes correlation_id automatically:
    # {"event": "notification_scheduled", "notification_id": "123",
    #  "correlation_id": "sweep-20250203-060000", "component": "...", ...}
"""

import logging
import sys
from typing import Any, Callable, Optional

import structlog
from structlog.typing import EventDict, WrappedLogger

from subwatch.observability.context import get_correlation_id


def add_correlation_id_processor(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that adds correlation_id to log entries.

    If no correlation ID is set, uses "none".
    """
    corr_id = get_correlation_id()
    event_dict["correlation_id"] = corr_id if corr_id else "none"
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_output: bool = True,
    add_timestamp: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_output: If True, output JSON. If False, use console format.
        add_timestamp: If True, add ISO timestamp to each log entry.

    Example:
        # Daemon (JSON for log aggregation)
        configure_logging(level="INFO", json_output=True)

        # Interactive CLI
        configure_logging(level="WARNING", json_output=False)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        add_correlation_id_processor,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if add_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))

    if json_output:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


def get_logger(
    component: Optional[str] = None,
    **initial_context: Any,
) -> Any:
    """Get a structured logger with optional component context.

    Args:
        component: Optional component/service name to include in logs
        **initial_context: Additional context to bind to all log entries

    Returns:
        A bound structlog logger
    """
    logger = structlog.get_logger()

    if component:
        logger = logger.bind(component=component)

    if initial_context:
        logger = logger.bind(**initial_context)

    return logger

