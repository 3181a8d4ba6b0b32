"""Tests for application-level middleware and end-to-end flows in visitlog.main."""

import pytest
from httpx import AsyncClient


# ---------------------------------------------------------------------------
# Security headers
# ---------------------------------------------------------------------------


class TestSecurityHeaders:
    @pytest.mark.asyncio
    async def test_x_content_type_options_present(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.headers.get("x-content-type-options") == "nosniff"

    @pytest.mark.asyncio
    async def test_x_frame_options_present(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.headers.get("x-frame-options") == "DENY"

    @pytest.mark.asyncio
    async def test_cache_control_present(self, client: AsyncClient):
        resp = await client.get("/health")
        assert resp.headers.get("cache-control") == "no-store"

    @pytest.mark.asyncio
    async def test_security_headers_on_error_response(self, client: AsyncClient):
        """Security headers should be present on all responses, including 4xx."""
        resp = await client.get("/v1/visits", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401
        assert "x-content-type-options" in resp.headers
        assert "x-frame-options" in resp.headers
        assert "cache-control" in resp.headers


# ---------------------------------------------------------------------------
# CORS headers
# ---------------------------------------------------------------------------


class TestCORSHeaders:
    @pytest.mark.asyncio
    async def test_preflight_allows_setup_token_header(self, client: AsyncClient):
        resp = await client.options(
            "/bootstrap-admin",
            headers={
                "Origin": "https://example.com",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "content-type, x-setup-token",
            },
        )
        assert resp.status_code in (200, 204)
        assert "access-control-allow-origin" in resp.headers

    @pytest.mark.asyncio
    async def test_cors_allow_origin_present_on_get(self, client: AsyncClient):
        resp = await client.get("/health", headers={"Origin": "https://example.com"})
        assert "access-control-allow-origin" in resp.headers


# ---------------------------------------------------------------------------
# OpenAPI docs (development mode)
# ---------------------------------------------------------------------------


class TestOpenAPIDocs:
    @pytest.mark.asyncio
    async def test_openapi_schema_contains_paths(self, client: AsyncClient):
        resp = await client.get("/openapi.json")
        assert resp.status_code == 200
        paths = resp.json()["paths"]
        assert "/v1/visits" in paths
        assert "/admin-create-user" in paths


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_record_search_and_summarize_flow(client: AsyncClient, admin_headers):
    """Record visits, search them, then read the dashboard summary."""
    await client.post("/v1/purposes", json={"name": "Sales"}, headers=admin_headers)
    for name, company, duration_end in (
        ("Ana Lopez", "Acme", "10:30"),
        ("ana lopez", "Acme", "11:00"),
        ("Bo Chen", "Globex", None),
    ):
        resp = await client.post(
            "/v1/visits",
            json={
                "visitorName": name,
                "company": company,
                "purpose": "Sales",
                "startTime": "10:00",
                "endTime": duration_end,
                "isStrategic": company == "Acme",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text

    search = await client.get("/v1/visits", params={"q": "acme"}, headers=admin_headers)
    assert [v["visitorName"] for v in search.json()] == ["Ana Lopez", "ana lopez"]

    resp = await client.get("/v1/dashboard", headers=admin_headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["purposes"] == ["Sales"]
    assert len(data["visits"]) == 3
    stats = data["stats"]
    assert stats["totalVisits"] == 3
    assert stats["uniqueVisitors"] == 2
    assert stats["averageDuration"] == 45.0
    assert stats["totalTime"] == 90
    assert stats["weeklyVisits"] == 3
