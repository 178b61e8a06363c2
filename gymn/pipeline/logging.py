"""
Gymn API — Request Logging Stage
==================================

Logs method, path and Origin of every request that reaches dispatch.
Pure observation: never alters the request or the control flow.
Completion (status, duration) is logged separately by PipelineMiddleware.
"""

import logging
from typing import Optional

from starlette.requests import Request
from starlette.responses import Response

from gymn.pipeline.base import Stage, request_id_var

logger = logging.getLogger("gymn.requests")

NO_ORIGIN = "No Origin"


class RequestLoggingStage(Stage):
    name = "logging"

    async def process(self, request: Request) -> Optional[Response]:
        logger.info(
            "[%s] %s %s - Origin: %s",
            request_id_var.get(""),
            request.method,
            request.url.path,
            request.headers.get("origin") or NO_ORIGIN,
        )
        return None
