"""
Gymn API — Pipeline Assembly & Route Group Tests
==================================================
"""

import logging

import pytest
from fastapi import APIRouter, FastAPI

from gymn.pipeline import build_pipeline
from gymn.routes.groups import ROUTE_GROUPS, mount_route_groups


def test_stage_order(settings):
    assert build_pipeline(settings).names == ("cors", "body", "cookies", "static", "logging")


def test_stages_are_fixed_after_build(settings):
    pipeline = build_pipeline(settings)
    with pytest.raises(AttributeError):
        pipeline.stages.append(object())


class TestRequestLogging:
    @pytest.mark.asyncio
    async def test_logs_origin(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="gymn.requests"):
            await client.get("/health", headers={"Origin": "http://localhost:4200"})

        assert "GET /health" in caplog.text
        assert "Origin: http://localhost:4200" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_missing_origin(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="gymn.requests"):
            await client.get("/health")

        assert "No Origin" in caplog.text

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["x-request-id"] == "abc123"


class TestRouteGroups:
    def test_prefixes(self):
        assert [group.prefix for group in ROUTE_GROUPS] == [
            "/api/auth",
            "/api/users",
            "/api/instructores",
            "/api/classes",
            "/api/youtube",
        ]

    def test_unknown_group_rejected(self):
        with pytest.raises(ValueError, match="payments"):
            mount_route_groups(FastAPI(), {"payments": APIRouter()})
