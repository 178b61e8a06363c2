"""
Gymn API — Centralized Error Stage
====================================

What:  Converts any exception raised while serving a request into the
       JSON error envelope.
Who:   Called by PipelineMiddleware for stage and handler failures, and
       registered as FastAPI exception handler for HTTPException and
       RequestValidationError.

Response shape:
    production:   {"success": false, "msg": "Error interno del servidor"}
    development:  {"success": false, "msg": <error message>,
                   "stack": <traceback>, "path": <path>, "method": <method>}

Status code: the exception's status_code attribute when it is a valid
HTTP error status, 422 for request validation errors, otherwise 500.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse

from gymn.exceptions import GymnError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Error interno del servidor"


class ErrorTranslator:
    """
    Terminal stage of the pipeline; never raises.

    Args:
        development: include raw messages and diagnostics in bodies
    """

    def __init__(self, development: bool):
        self.development = development

    @staticmethod
    def status_for(exc: Exception) -> int:
        if isinstance(exc, RequestValidationError):
            return 422
        status = getattr(exc, "status_code", None)
        if isinstance(status, int) and 400 <= status <= 599:
            return status
        return 500

    @staticmethod
    def message_for(exc: Exception) -> str:
        if isinstance(exc, GymnError):
            return exc.message
        if isinstance(exc, HTTPException):
            return str(exc.detail)
        if isinstance(exc, RequestValidationError):
            return "; ".join(
                f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
                for error in exc.errors()
            )
        return str(exc) or type(exc).__name__

    def build_body(self, request: Request, exc: Exception) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "success": False,
            "msg": self.message_for(exc) if self.development else GENERIC_ERROR_MESSAGE,
        }
        if self.development:
            body["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
            body["path"] = request.url.path
            body["method"] = request.method
        return body

    def to_response(self, request: Request, exc: Exception) -> JSONResponse:
        status = self.status_for(exc)
        rid = getattr(request.state, "request_id", "")
        logger.error(
            "Error [%s] [%s] %s %s -> %d: %s | Context: %s",
            datetime.now(timezone.utc).isoformat(),
            rid,
            request.method,
            request.url.path,
            status,
            exc,
            getattr(exc, "context", {}),
            exc_info=(type(exc), exc, exc.__traceback__),
        )

        headers = getattr(exc, "headers", None) if isinstance(exc, HTTPException) else None
        return JSONResponse(
            status_code=status,
            content=self.build_body(request, exc),
            headers=headers,
        )

    async def handle(self, request: Request, exc: Exception) -> JSONResponse:
        """FastAPI exception_handler adapter."""
        return self.to_response(request, exc)
