"""FastAPI health server for the notification daemon.

Provides HTTP endpoints for:
- /health - Full health check
- /live - Liveness probe
- /metrics - Prometheus metrics in text format

Usage:
    from subwatch.health.server import create_health_app, run_health_server_async

    app = create_health_app(HealthChecker(store=store))
    await run_health_server_async(checker, port=8000)
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse

from subwatch.health.checks import HealthChecker, HealthStatus
from subwatch.observability.logging import get_logger
from subwatch.observability.metrics import get_metrics_content_type, get_metrics_text

logger = get_logger("health_server")


def create_health_app(
    checker: Optional[HealthChecker] = None,
    title: str = "subwatch Health API",
    version: str = "0.1.0",
) -> FastAPI:
    """Create FastAPI application with health endpoints.

    Args:
        checker: Health checker backing /health (defaults to one with no
            collaborators, which always reports healthy)
        title: API title
        version: API version

    Returns:
        Configured FastAPI application
    """
    checker = checker or HealthChecker()

    app = FastAPI(
        title=title,
        version=version,
        description="Health check and metrics endpoints for the subwatch daemon",
    )
    app.state.health_checker = checker

    @app.get(
        "/health",
        response_model=None,
        summary="Full health check",
        responses={
            200: {"description": "Healthy or degraded"},
            503: {"description": "One or more checks failed"},
        },
    )
    async def health_check() -> Response:
        """Run all health checks; 503 if unhealthy."""
        report = await app.state.health_checker.check_all()

        status_code = (
            status.HTTP_200_OK
            if report.status != HealthStatus.UNHEALTHY
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )

        return JSONResponse(content=report.to_dict(), status_code=status_code)

    @app.get("/live", response_model=None, summary="Liveness probe")
    async def liveness_probe() -> Response:
        is_alive = await app.state.health_checker.is_alive()

        return JSONResponse(
            content={"alive": is_alive, "message": "Service is alive"},
            status_code=status.HTTP_200_OK,
        )

    @app.get(
        "/metrics",
        response_class=PlainTextResponse,
        summary="Prometheus metrics",
    )
    async def prometheus_metrics() -> Response:
        return Response(
            content=get_metrics_text(),
            media_type=get_metrics_content_type(),
        )

    @app.get("/", response_model=None, summary="Root endpoint")
    async def root() -> Dict[str, Any]:
        return {
            "name": title,
            "version": version,
            "endpoints": {
                "health": "/health",
                "live": "/live",
                "metrics": "/metrics",
            },
        }

    return app


async def run_health_server_async(  # pragma: no cover
    checker: Optional[HealthChecker] = None,
    host: str = "0.0.0.0",
    port: int = 8000,
    log_level: str = "info",
) -> None:
    """Run health server asynchronously.

    Args:
        checker: Health checker backing /health
        host: Host to bind to
        port: Port to bind to
        log_level: Logging level
    """
    import uvicorn

    app = create_health_app(checker)
    config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level=log_level,
        access_log=False,
    )
    server = uvicorn.Server(config)

    logger.info("health_server_starting", host=host, port=port)
    await server.serve()
