"""
Gymn API — Health Route Tests
===============================

What:  GET /health answers 200 whatever the database state.
"""

from datetime import datetime

import pytest

from gymn.database import ConnectionState


class TestHealth:
    @pytest.mark.asyncio
    async def test_health_returns_success(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Servidor funcionando correctamente"
        assert body["environment"] == "development"
        # ISO 8601 timestamp
        datetime.fromisoformat(body["timestamp"].replace("Z", "+00:00"))

    @pytest.mark.asyncio
    async def test_health_ignores_database_state(self, client):
        """The manager was never connected, yet health is still 200."""
        assert client.app.state.database.state is ConnectionState.DISCONNECTED

        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["success"] is True

    @pytest.mark.asyncio
    async def test_health_reports_environment(self, production_client):
        response = await production_client.get("/health")
        assert response.json()["environment"] == "production"

    @pytest.mark.asyncio
    async def test_response_carries_request_id(self, client):
        """Client-provided X-Request-ID is echoed; otherwise one is generated."""
        echoed = await client.get("/health", headers={"X-Request-ID": "abc123"})
        assert echoed.headers["X-Request-ID"] == "abc123"

        generated = await client.get("/health")
        assert len(generated.headers["X-Request-ID"]) == 8

    @pytest.mark.asyncio
    async def test_head_health(self, client):
        response = await client.head("/health")
        assert response.status_code == 200
