"""
Gymn API — FastAPI Application Factory
========================================

What:  Builds the gateway: pipeline middleware, routes, error handlers,
       and the lifespan that owns the database connection.
How:   create_app(settings, ...) takes every collaborator explicitly
       (settings, connection manager, lifecycle, route-group routers);
       nothing is read from the environment here.
Who:   gymn.server.run() in production; tests build their own instances.

Application Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                        FastAPI App                        │
    │                                                           │
    │  PipelineMiddleware:                                      │
    │  ┌──────┐ ┌──────┐ ┌─────────┐ ┌────────┐ ┌─────────┐     │
    │  │ CORS │→│ Body │→│ Cookies │→│ Static │→│ Log     │     │
    │  └──────┘ └──────┘ └─────────┘ └────────┘ └─────────┘     │
    │                                                           │
    │  Routes:                                                  │
    │  ┌─────────────┐ ┌──────────────────────┐ ┌───────────┐   │
    │  │ GET /health │ │ /api/* route groups  │ │ 404 catch │   │
    │  └─────────────┘ └──────────────────────┘ └───────────┘   │
    │                                                           │
    │  Errors: every failure → ErrorTranslator → {success:false}│
    └───────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Install the event-loop error handler
    2. Log listening address, environment and allowed origins
    3. Start the database connect in the background (HTTP does not wait)

    Shutdown (SIGINT / SIGTERM via uvicorn):
    1. Cancel a connect still in flight
    2. Close the database connection; a failed close sets exit status 1
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Mapping, Optional

from fastapi import APIRouter, FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException

from gymn import __version__
from gymn.config import Settings
from gymn.database import MongoConnectionManager
from gymn.exceptions import DatabaseConnectionError, GymnError
from gymn.lifecycle import ProcessLifecycle, log_unhandled_async_error
from gymn.pipeline import ErrorTranslator, PipelineMiddleware, build_pipeline
from gymn.routes import fallback, health
from gymn.routes.groups import mount_route_groups

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire process.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s on stdout.
    Called once by gymn.server.run() before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # The pipeline writes its own access line
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

async def connect_database(
    database: MongoConnectionManager, lifecycle: ProcessLifecycle, development: bool
) -> None:
    """
    Background connect. Any failure is fatal for the process: the
    lifecycle stops the server and the process exits with status 1.
    """
    try:
        await database.connect()
    except DatabaseConnectionError as exc:
        logger.error("Connection error: %s", exc.message)
        if development:
            logger.error("Error details: %r", exc.__cause__ or exc, exc_info=exc)
        lifecycle.fail("database connection could not be established")
    except Exception:
        logger.exception("Unexpected error while connecting to MongoDB")
        lifecycle.fail("database connection could not be established")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings: Settings = app.state.settings
    database: MongoConnectionManager = app.state.database
    lifecycle: ProcessLifecycle = app.state.lifecycle

    # ── Startup ───────────────────────────────────────────────────────────
    asyncio.get_running_loop().set_exception_handler(log_unhandled_async_error)

    logger.info("=" * 60)
    logger.info("Server running on port %d", settings.port)
    logger.info("Environment: %s", settings.environment)
    logger.info("URL: http://%s:%d", settings.host, settings.port)
    logger.info("Allowed origins: %s", settings.allowed_origins)
    logger.info("=" * 60)

    connect_task = asyncio.create_task(
        connect_database(database, lifecycle, settings.is_development),
        name="mongo-connect",
    )

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    if not connect_task.done():
        connect_task.cancel()
        try:
            await connect_task
        except asyncio.CancelledError:
            logger.info("Pending database connect cancelled")

    try:
        await database.close()
    except DatabaseConnectionError as exc:
        logger.error("Error closing the MongoDB connection: %s", exc.message, exc_info=exc)
        lifecycle.exit_code = 1
    else:
        logger.info("MongoDB connection closed on application shutdown")


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Settings,
    database: Optional[MongoConnectionManager] = None,
    lifecycle: Optional[ProcessLifecycle] = None,
    routers: Optional[Mapping[str, APIRouter]] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:   validated configuration (preflight already passed)
        database:   connection manager; built from settings when omitted
        lifecycle:  exit-code holder shared with gymn.server
        routers:    route-group name → collaborator router
                    (see gymn.routes.groups.ROUTE_GROUPS)
    """
    app = FastAPI(
        title="Gymn API",
        description="REST gateway for the Gymn class-management application.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    if database is None:
        database = MongoConnectionManager.from_settings(settings)
    app.state.database = database
    app.state.lifecycle = lifecycle if lifecycle is not None else ProcessLifecycle()

    # ── Pipeline & Error Stage ────────────────────────────────────────────
    translator = ErrorTranslator(development=settings.is_development)
    pipeline = build_pipeline(settings)
    app.state.pipeline = pipeline
    app.add_middleware(PipelineMiddleware, pipeline=pipeline, translator=translator)

    # Errors raised inside the router are answered by the same translator
    app.add_exception_handler(HTTPException, translator.handle)
    app.add_exception_handler(RequestValidationError, translator.handle)
    app.add_exception_handler(GymnError, translator.handle)

    # ── Routes (fallback last) ────────────────────────────────────────────
    app.include_router(health.router)
    mount_route_groups(app, routers)
    app.include_router(fallback.router)

    return app
