"""Observability module.

Provides:
- Correlation ID context management for tracing sweeps and timers
- Structured logging with context propagation
- Prometheus metrics for monitoring and alerting

Usage:
    from subwatch.observability import (
        set_correlation_id,
        get_logger,
        NOTIFICATION_DELIVERIES,
    )

    corr_id = set_correlation_id()

    logger = get_logger()
    logger.info("sweep_started")

    NOTIFICATION_DELIVERIES.labels(outcome="sent").inc()
"""

from subwatch.observability.context import (
    set_correlation_id,
    get_correlation_id,
    clear_correlation_id,
    correlation_id_context,
)
from subwatch.observability.logging import (
    get_logger,
    configure_logging,
    add_correlation_id_processor,
)
from subwatch.observability.metrics import (
    # Counters
    NOTIFICATIONS_SCHEDULED,
    NOTIFICATION_DELIVERIES,
    NOTIFICATION_CANCELLATIONS,
    CLAIM_CONFLICTS,
    DUPLICATES_DETECTED,
    MESSAGE_DUPLICATES,
    # Gauges
    ARMED_TIMERS,
    SCHEDULER_JOBS,
    # Histograms
    SWEEP_DURATION,
    DELIVERY_LATENCY,
    # Utilities
    get_metrics_text,
)

__all__ = [
    # Context
    "set_correlation_id",
    "get_correlation_id",
    "clear_correlation_id",
    "correlation_id_context",
    # Logging
    "get_logger",
    "configure_logging",
    "add_correlation_id_processor",
    # Counters
    "NOTIFICATIONS_SCHEDULED",
    "NOTIFICATION_DELIVERIES",
    "NOTIFICATION_CANCELLATIONS",
    "CLAIM_CONFLICTS",
    "DUPLICATES_DETECTED",
    "MESSAGE_DUPLICATES",
    # Gauges
    "ARMED_TIMERS",
    "SCHEDULER_JOBS",
    # Histograms
    "SWEEP_DURATION",
    "DELIVERY_LATENCY",
    # Utilities
    "get_metrics_text",
]
