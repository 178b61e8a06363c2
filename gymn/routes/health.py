"""
Gymn API — Health Check Route
===============================

What:  Liveness endpoint polled by the hosting platform.
How:   Answers from process state only; the database is deliberately not
       probed, so the route reports 200 while the connection is still
       being established or has dropped.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from gymn.schemas.responses import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

HEALTH_MESSAGE = "Servidor funcionando correctamente"


@router.api_route(
    "/health",
    methods=["GET", "HEAD"],
    response_model=HealthResponse,
    summary="Service health check",
    description="Always 200 while the HTTP server is up, regardless of database state.",
)
async def health_check(request: Request) -> HealthResponse:
    settings = request.app.state.settings
    return HealthResponse(
        success=True,
        message=HEALTH_MESSAGE,
        timestamp=datetime.now(timezone.utc),
        environment=settings.environment,
    )
