"""
Gymn API — Test Configuration (conftest.py)
=============================================

What:  Shared pytest fixtures for the entire test suite.
How:   Settings are built explicitly (no .env, no ambient environment);
       the MongoDB client is replaced by FakeMotorClient, so no database
       or network is needed.

Fixture Hierarchy:
    make_settings    factory: Settings with test defaults + overrides
    settings         development settings with a temp public directory
    make_manager     factory: MongoConnectionManager over FakeMotorClient
    collaborator_routers    collaborator routers that record what reached them
    make_client      factory: HTTPX AsyncClient for an app built from settings
    client           client for the default development app
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from fastapi import APIRouter, Depends, HTTPException, Request
from httpx import ASGITransport, AsyncClient

from gymn.config import Settings
from gymn.database import MongoConnectionManager, get_database
from gymn.main import create_app

TEST_MONGO_URI = "mongodb://localhost:27017/gymn_test"


# ══════════════════════════════════════════════════════════════════════════
# MongoDB Double
# ══════════════════════════════════════════════════════════════════════════

class FakeMotorClient:
    """
    Stands in for AsyncIOMotorClient: records constructor options and
    answers ping via an AsyncMock the test can reconfigure.
    """

    instances: List["FakeMotorClient"] = []

    def __init__(self, uri: str, **options: Any):
        self.uri = uri
        self.options = options
        self.admin = MagicMock()
        self.admin.command = AsyncMock(return_value={"ok": 1.0})
        self.address = ("localhost", 27017)
        self.closed = False
        self.database = MagicMock()
        self.database.name = "gymn_test"
        FakeMotorClient.instances.append(self)

    def get_default_database(self, default=None):
        return self.database

    def close(self) -> None:
        self.closed = True


# ══════════════════════════════════════════════════════════════════════════
# Settings & Connection Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_settings(tmp_path):
    """
    Factory for Settings isolated from the environment and .env files.

    Usage:
        settings = make_settings(node_env="production", max_body_size=16)
    """

    def _make(**overrides) -> Settings:
        values: Dict[str, Any] = {
            "mongo_uri": TEST_MONGO_URI,
            "jwt_secret": "test-secret-not-real",
            "node_env": "development",
            "frontend_url": None,
            "log_level": "WARNING",
            "public_dir": str(tmp_path / "public"),
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def make_manager():
    def _make(uri=TEST_MONGO_URI, client_factory=FakeMotorClient) -> MongoConnectionManager:
        return MongoConnectionManager(uri, client_factory=client_factory)

    FakeMotorClient.instances = []
    return _make


# ══════════════════════════════════════════════════════════════════════════
# Route Collaborator Doubles
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def handler_calls():
    """Names of stand-in handlers that were actually invoked."""
    return []


@pytest.fixture
def collaborator_routers(handler_calls):
    """
    Stand-in routers for three of the five groups.

        GET  /api/users             → list, records "users.list"
        GET  /api/users/db          → uses the get_database dependency
        POST /api/classes           → echoes parsed body and cookies
        GET  /api/auth/boom         → raises RuntimeError
        GET  /api/auth/protected    → raises HTTPException(401)
    """
    users = APIRouter()
    classes = APIRouter()
    auth = APIRouter()

    @users.get("")
    async def list_users():
        handler_calls.append("users.list")
        return {"success": True, "users": []}

    @users.get("/db")
    async def users_db(db=Depends(get_database)):
        handler_calls.append("users.db")
        return {"success": True, "database": db.name}

    @classes.post("")
    async def create_class(request: Request):
        handler_calls.append("classes.create")
        return {
            "success": True,
            "body": request.state.body,
            "cookies": request.state.cookies,
        }

    @auth.get("/boom")
    async def boom():
        handler_calls.append("auth.boom")
        raise RuntimeError("boom")

    @auth.get("/protected")
    async def protected():
        handler_calls.append("auth.protected")
        raise HTTPException(status_code=401, detail="Token no válido")

    return {"users": users, "classes": classes, "auth": auth}


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_client(make_manager, collaborator_routers):
    """
    Factory returning an async context manager around an HTTPX client
    talking to a freshly built app (no server, no lifespan).

    Usage:
        async with make_client(make_settings(node_env="production")) as client:
            response = await client.get("/health")
    """

    @asynccontextmanager
    async def _make(app_settings: Settings, database=None, routers=None):
        app = create_app(
            app_settings,
            database=database if database is not None else make_manager(),
            routers=collaborator_routers if routers is None else routers,
        )
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            client.app = app
            yield client

    return _make


@pytest_asyncio.fixture
async def client(make_client, settings):
    async with make_client(settings) as test_client:
        yield test_client


@pytest_asyncio.fixture
async def production_client(make_client, make_settings):
    async with make_client(make_settings(node_env="production")) as test_client:
        yield test_client
