"""
Tests for the health check and application info endpoints.

Covers:
- Healthy state with the database check passing
- Response structure validation
- Both /health and /api/health paths
- /api and /api/info metadata
"""

import pytest
from httpx import AsyncClient


class TestHealthEndpoint:
    """Health check endpoint tests."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/health", "/api/health"])
    async def test_health_returns_200(self, async_client: AsyncClient, path):
        """Both health paths return 200 when the database is accessible."""
        response = await async_client.get(path)
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_health_response_structure(self, async_client: AsyncClient):
        """Health response contains all required fields."""
        response = await async_client.get("/health")
        data = response.json()
        for field in ("status", "app", "version", "uptime_seconds", "checks", "timestamp"):
            assert field in data
        assert isinstance(data["checks"], list)
        assert isinstance(data["uptime_seconds"], (int, float))

    @pytest.mark.asyncio
    async def test_health_includes_database_check(self, async_client: AsyncClient):
        """Health response includes a database connectivity check."""
        response = await async_client.get("/health")
        data = response.json()
        assert [c["name"] for c in data["checks"]] == ["database"]
        db_check = data["checks"][0]
        assert db_check["status"] == "ok"
        assert db_check["response_time_ms"] is not None

    @pytest.mark.asyncio
    async def test_health_uptime_is_non_negative(self, async_client: AsyncClient):
        response = await async_client.get("/health")
        assert response.json()["uptime_seconds"] >= 0

    @pytest.mark.asyncio
    async def test_health_app_and_version_present(self, async_client: AsyncClient):
        """App name and version are present in health response."""
        response = await async_client.get("/health")
        data = response.json()
        assert data["app"] == "SPECTRA"
        assert data["version"]


class TestInfoEndpoints:

    @pytest.mark.asyncio
    async def test_api_root_lists_endpoints(self, async_client: AsyncClient):
        response = await async_client.get("/api")
        assert response.status_code == 200
        endpoints = response.json()["endpoints"]
        assert endpoints["nodes"] == "/api/nodes"
        assert endpoints["customers"] == "/api/customers"

    @pytest.mark.asyncio
    async def test_info_includes_changelog(self, async_client: AsyncClient):
        response = await async_client.get("/api/info")
        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "SPECTRA"
        assert data["demo_mode"] is False
        assert "0.1.0" in data["changelog"]

    @pytest.mark.asyncio
    async def test_unknown_route_uses_error_envelope(self, async_client: AsyncClient):
        response = await async_client.get("/api/does-not-exist")
        assert response.status_code == 404
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, async_client: AsyncClient):
        response = await async_client.get("/api", headers={"X-Request-ID": "abc123"})
        assert response.headers["x-request-id"] == "abc123"
