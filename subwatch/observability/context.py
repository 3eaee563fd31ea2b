"""Correlation ID context management for tracing sweeps and timers.

Provides ContextVar-based storage for correlation IDs that propagate
automatically across async boundaries.

Usage:
    from subwatch.observability.context import (
        set_correlation_id,
        get_correlation_id,
        correlation_id_context,
    )

    # At a job boundary (sweep run, one-shot timer, CLI command)
    corr_id = set_correlation_id()  # Generates UUID if not provided

    # Use context manager for scoped correlation IDs
    with correlation_id_context(f"timer-{notification_id}"):
        await scheduler.process_notification(notification_id)
    # Previous correlation ID is restored after context exits
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Generator, Optional

_correlation_id_var: ContextVar[Optional[str]] = ContextVar(
    "correlation_id", default=None
)


def set_correlation_id(corr_id: Optional[str] = None) -> str:
    """Set the correlation ID for the current context.

    Args:
        corr_id: Optional correlation ID. If None, generates UUID.

    Returns:
        The correlation ID that was set (generated or provided).
    """
    if corr_id is None:
        corr_id = str(uuid.uuid4())

    _correlation_id_var.set(corr_id)
    return corr_id


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID, or None if not set."""
    return _correlation_id_var.get()


def clear_correlation_id() -> None:
    """Clear the current correlation ID.

    Use at job boundaries to prevent leakage between unrelated runs.
    """
    _correlation_id_var.set(None)


@contextmanager
def correlation_id_context(
    corr_id: Optional[str] = None,
) -> Generator[str, None, None]:
    """Context manager for scoped correlation IDs.

    Sets correlation ID on entry and restores the previous value on exit.

    Args:
        corr_id: Optional correlation ID. If None, generates UUID.

    Yields:
        The correlation ID being used in this context.
    """
    if corr_id is None:
        corr_id = str(uuid.uuid4())

    token = _correlation_id_var.set(corr_id)

    try:
        yield corr_id
    finally:
        _correlation_id_var.reset(token)
