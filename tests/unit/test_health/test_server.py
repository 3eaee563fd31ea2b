"""Tests for FastAPI health server."""

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from subwatch.health.checks import (
    CheckResult,
    CheckStatus,
    HealthChecker,
    HealthReport,
    HealthStatus,
)
from subwatch.health.server import create_health_app


def _checker(status: HealthStatus, check_status: CheckStatus) -> MagicMock:
    checker = MagicMock(spec=HealthChecker)

    async def mock_check_all():
        return HealthReport(
            status=status,
            checks=[
                CheckResult(name="job_scheduler", status=check_status, message="msg")
            ],
        )

    async def mock_is_alive():
        return True

    checker.check_all = mock_check_all
    checker.is_alive = mock_is_alive
    return checker


@pytest.fixture
def client():
    """Create test client with the default checker."""
    return TestClient(create_health_app())


class TestHealthEndpoint:
    """Tests for /health endpoint."""

    def test_healthy(self):
        """Should return 200 when healthy."""
        client = TestClient(
            create_health_app(_checker(HealthStatus.HEALTHY, CheckStatus.PASS))
        )

        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["checks"][0]["name"] == "job_scheduler"

    def test_degraded_still_200(self):
        """Should return 200 when degraded."""
        client = TestClient(
            create_health_app(_checker(HealthStatus.DEGRADED, CheckStatus.WARN))
        )

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "degraded"

    def test_unhealthy_503(self):
        """Should return 503 when unhealthy."""
        client = TestClient(
            create_health_app(_checker(HealthStatus.UNHEALTHY, CheckStatus.FAIL))
        )

        response = client.get("/health")

        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"

    def test_default_checker_healthy(self, client):
        """Should be healthy with no collaborators."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["checks"] == []


class TestOtherEndpoints:
    """Tests for /live, /metrics and /."""

    def test_live(self, client):
        """Should report alive."""
        response = client.get("/live")

        assert response.status_code == 200
        assert response.json()["alive"] is True

    def test_metrics(self, client):
        """Should expose Prometheus text."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "subwatch_" in response.text

    def test_root(self, client):
        """Should list endpoints."""
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"] == {
            "health": "/health",
            "live": "/live",
            "metrics": "/metrics",
        }
