"""Integration tests for /healthz and /metrics endpoints."""

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncEngine

from backend.app.api.routes.health import check_db
from backend.app.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


class TestHealthEndpoint:
    """Test /health and /healthz endpoints."""

    def test_health_always_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    @patch("backend.app.api.routes.health.check_db")
    def test_healthz_returns_200_when_db_ok(self, mock_check_db: MagicMock, client: TestClient) -> None:
        """Test /healthz returns 200 when the database answers."""
        mock_check_db.return_value = (True, "ok")

        response = client.get("/healthz")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["components"] == {"db": "ok"}

    @patch("backend.app.api.routes.health.check_db")
    def test_healthz_returns_503_when_db_fails(self, mock_check_db: MagicMock, client: TestClient) -> None:
        """Test /healthz returns 503 when DB check fails."""
        mock_check_db.return_value = (False, "error: ConnectionRefusedError")

        response = client.get("/healthz")

        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "degraded"
        assert data["components"]["db"] == "error: ConnectionRefusedError"


class TestCheckDb:
    """Test the database probe itself."""

    @pytest.mark.asyncio
    async def test_check_db_against_sqlite(self, sqlite_engine: AsyncEngine) -> None:
        assert await check_db(sqlite_engine) == (True, "ok")

    @pytest.mark.asyncio
    async def test_check_db_reports_error_type(self) -> None:
        with patch("backend.app.api.routes.health.get_async_engine", side_effect=ValueError("no url")):
            ok, status = await check_db()

        assert ok is False
        assert status == "error: ValueError"


class TestMetricsEndpoint:
    """Test /metrics endpoint."""

    def test_metrics_returns_prometheus_format(self, client: TestClient) -> None:
        """Test /metrics returns Prometheus text format."""
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "text/plain" in response.headers["content-type"]
        assert "# HELP" in response.text

    def test_metrics_includes_document_metrics(self, client: TestClient) -> None:
        """Test /metrics includes document and stream metrics."""
        from backend.app.utils.metrics import PrometheusDocumentMetrics

        metrics = PrometheusDocumentMetrics()
        metrics.record_latency("text", "create", "success", 120.0)
        metrics.inc_version_saved("text")
        metrics.inc_stream_event("text-delta")
        metrics.inc_suggestions(2)

        text = client.get("/metrics").text

        assert "document_operation_latency_ms" in text
        assert 'document_versions_saved_total{kind="text"}' in text
        assert 'stream_events_total{type="text-delta"}' in text
        assert "suggestions_generated_total" in text


class TestRootEndpoint:
    """Test root endpoint."""

    def test_root_returns_api_info(self, client: TestClient) -> None:
        """Test root endpoint returns API information."""
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Artifact Chat API"
        assert data["version"] == "0.1.0"
