"""
Gymn API — CORS Stage Tests
=============================

What:  Origin admission, preflight short-circuit, and CORS headers.

Test Strategy:
    ✅ No Origin header → allowed
    ✅ Allow-listed Origin → allowed, credentialed CORS headers
    ✅ Unknown Origin → 403 through the error stage, handler never runs
    ✅ Preflight → 204 without reaching handlers
"""

import logging

import pytest

from gymn.pipeline.cors import ALLOWED_HEADERS, ALLOWED_METHODS, CorsPolicy

ALLOWED_ORIGIN = "http://localhost:3000"
EVIL_ORIGIN = "http://evil.example"


class TestCorsPolicy:
    def setup_method(self):
        self.policy = CorsPolicy(["https://gymn.web.app", ALLOWED_ORIGIN])

    def test_absent_origin_allowed(self):
        assert self.policy.is_allowed(None)
        assert self.policy.is_allowed("")

    def test_listed_origin_allowed(self):
        assert self.policy.is_allowed(ALLOWED_ORIGIN)

    def test_match_is_exact(self):
        """No prefix, suffix, scheme or trailing-slash leniency."""
        assert not self.policy.is_allowed("http://localhost:3000/")
        assert not self.policy.is_allowed("https://localhost:3000")
        assert not self.policy.is_allowed("https://gymn.web.app.evil.example")

    def test_unknown_origin_rejected(self):
        assert not self.policy.is_allowed(EVIL_ORIGIN)


class TestCorsStage:
    @pytest.mark.asyncio
    async def test_request_without_origin_passes(self, client, handler_calls):
        response = await client.get("/api/users")

        assert response.status_code == 200
        assert handler_calls == ["users.list"]
        assert "access-control-allow-origin" not in response.headers

    @pytest.mark.asyncio
    async def test_allowed_origin_gets_credentialed_headers(self, client):
        response = await client.get("/health", headers={"Origin": ALLOWED_ORIGIN})

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert response.headers["access-control-allow-credentials"] == "true"
        assert "Origin" in response.headers["vary"]

    @pytest.mark.asyncio
    async def test_frontend_url_origin_allowed(self, make_client, make_settings):
        settings = make_settings(frontend_url="https://preview.gymn.app")
        async with make_client(settings) as client:
            response = await client.get("/health", headers={"Origin": "https://preview.gymn.app"})
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "https://preview.gymn.app"

    @pytest.mark.asyncio
    async def test_unknown_origin_blocked_before_handler(self, client, handler_calls, caplog):
        with caplog.at_level(logging.WARNING, logger="gymn.pipeline.cors"):
            response = await client.get("/api/users", headers={"Origin": EVIL_ORIGIN})

        assert response.status_code == 403
        body = response.json()
        assert body["success"] is False
        assert body["msg"] == "No permitido por CORS"
        assert handler_calls == []
        assert "access-control-allow-origin" not in response.headers
        assert EVIL_ORIGIN in caplog.text

    @pytest.mark.asyncio
    async def test_unknown_origin_production_body_is_generic(self, production_client):
        response = await production_client.get("/api/users", headers={"Origin": EVIL_ORIGIN})

        assert response.status_code == 403
        assert response.json() == {"success": False, "msg": "Error interno del servidor"}

    @pytest.mark.asyncio
    async def test_preflight_short_circuits_with_204(self, client, handler_calls):
        response = await client.options(
            "/api/users",
            headers={
                "Origin": ALLOWED_ORIGIN,
                "Access-Control-Request-Method": "POST",
            },
        )

        assert response.status_code == 204
        assert response.content == b""
        assert handler_calls == []
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
        assert response.headers["access-control-allow-methods"] == ",".join(ALLOWED_METHODS)
        assert response.headers["access-control-allow-headers"] == ",".join(ALLOWED_HEADERS)

    @pytest.mark.asyncio
    async def test_preflight_from_unknown_origin_rejected(self, client):
        response = await client.options("/api/users", headers={"Origin": EVIL_ORIGIN})
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_error_responses_keep_cors_headers(self, client):
        """A 404 for an allowed origin is still readable by the browser."""
        response = await client.get("/api/unknown", headers={"Origin": ALLOWED_ORIGIN})

        assert response.status_code == 404
        assert response.headers["access-control-allow-origin"] == ALLOWED_ORIGIN
