"""
Gymn API — Not-Found Fallback
===============================

Catch-all route included after every other router: any method on any
path no route claimed ends here with the structured 404 body.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from gymn.schemas.responses import NotFoundResponse

logger = logging.getLogger(__name__)

router = APIRouter(include_in_schema=False)

ANY_METHOD = ["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS", "HEAD"]


@router.api_route("/{unmatched_path:path}", methods=ANY_METHOD)
async def route_not_found(request: Request, unmatched_path: str) -> JSONResponse:
    logger.warning("Route not found: %s %s", request.method, request.url.path)
    body = NotFoundResponse(path=request.url.path, method=request.method)
    return JSONResponse(status_code=404, content=body.model_dump())
