"""Health check module.

Provides:
- Health checks for the job scheduler, notification store and data directory
- FastAPI health endpoints (/health, /live, /metrics)
- Integration with Prometheus metrics export

Usage:
    from subwatch.health import HealthChecker, create_health_app

    checker = HealthChecker(store=store, job_scheduler=job_scheduler)
    report = await checker.check_all()

    app = create_health_app(checker)
"""

from subwatch.health.checks import (
    CheckResult,
    CheckStatus,
    HealthChecker,
    HealthReport,
    HealthStatus,
)
from subwatch.health.server import create_health_app, run_health_server_async

__all__ = [
    "HealthChecker",
    "HealthStatus",
    "HealthReport",
    "CheckResult",
    "CheckStatus",
    "create_health_app",
    "run_health_server_async",
]
