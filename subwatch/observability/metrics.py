"""Prometheus metrics definitions for subwatch.

Defines counters, gauges, and histograms for monitoring:
- Notification scheduling and delivery outcomes
- Duplicate detection results
- Sweep latency and armed one-shot timers
- Background job scheduler status

Usage:
    from subwatch.observability.metrics import (
        NOTIFICATIONS_SCHEDULED,
        NOTIFICATION_DELIVERIES,
        SWEEP_DURATION,
    )

    NOTIFICATIONS_SCHEDULED.labels(type="payment_reminder").inc()

    with SWEEP_DURATION.time():
        await scheduler.process_scheduled_notifications()

Metrics are exposed via /metrics endpoint in the health server.
"""

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Custom registry to avoid conflicts with default registry
REGISTRY = CollectorRegistry(auto_describe=True)

# =============================================================================
# COUNTERS - Monotonically increasing values
# =============================================================================

NOTIFICATIONS_SCHEDULED = Counter(
    name="subwatch_notifications_scheduled_total",
    documentation="Total notifications scheduled",
    labelnames=["type"],  # payment_reminder, price_change, ...
    registry=REGISTRY,
)

NOTIFICATION_DELIVERIES = Counter(
    name="subwatch_notification_deliveries_total",
    documentation="Delivery attempt outcomes",
    labelnames=["outcome"],  # sent, retried, failed, deferred, suppressed
    registry=REGISTRY,
)

NOTIFICATION_CANCELLATIONS = Counter(
    name="subwatch_notification_cancellations_total",
    documentation="Total notifications cancelled",
    labelnames=["reason"],  # user, disabled_by_preferences
    registry=REGISTRY,
)

CLAIM_CONFLICTS = Counter(
    name="subwatch_claim_conflicts_total",
    documentation="Delivery attempts skipped because the record was no longer pending",
    registry=REGISTRY,
)

DUPLICATES_DETECTED = Counter(
    name="subwatch_duplicates_detected_total",
    documentation="Subscriptions reported as duplicates",
    labelnames=["reason"],  # service_name_match, amount_time_match, ...
    registry=REGISTRY,
)

MESSAGE_DUPLICATES = Counter(
    name="subwatch_message_duplicates_total",
    documentation="SMS messages recognised as already processed",
    registry=REGISTRY,
)

# =============================================================================
# GAUGES - Values that can go up and down
# =============================================================================

ARMED_TIMERS = Gauge(
    name="subwatch_armed_timers",
    documentation="Number of one-shot notification timers currently armed",
    registry=REGISTRY,
)

SCHEDULER_JOBS = Gauge(
    name="subwatch_scheduler_jobs",
    documentation="Number of scheduled background jobs",
    labelnames=["status"],  # pending, active
    registry=REGISTRY,
)

# =============================================================================
# HISTOGRAMS - Distribution of values
# =============================================================================

SWEEP_DURATION = Histogram(
    name="subwatch_sweep_duration_seconds",
    documentation="Duration of a sweep over due notifications",
    buckets=(0.01, 0.05, 0.1, 0.5, 1, 2, 5, 10, 30, float("inf")),
    registry=REGISTRY,
)

DELIVERY_LATENCY = Histogram(
    name="subwatch_delivery_latency_seconds",
    documentation="Delay between scheduled_for and successful delivery",
    buckets=(1, 5, 15, 30, 60, 120, 300, 900, 3600, float("inf")),
    registry=REGISTRY,
)


def get_metrics_text() -> bytes:
    """Generate Prometheus metrics in text exposition format."""
    return generate_latest(REGISTRY)


def get_metrics_content_type() -> str:
    """Content-Type header value for Prometheus metrics."""
    return CONTENT_TYPE_LATEST
