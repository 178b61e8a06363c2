"""
Gymn API — Request Pipeline Core
==================================

What:  The ordered chain of stages every HTTP request passes through
       before route dispatch, and the middleware that runs it.
How:   Each Stage answers process(request) with one of three outcomes:
           None       continue with the next stage
           Response   short-circuit; that response is sent
           raise      jump to the centralized error stage
       After the last stage the request is dispatched to the router.
       Whatever response leaves the pipeline (normal, short-circuit, or
       error) is offered to every stage's decorate() hook, then tagged
       with the request ID and access-logged.

Pipeline (fixed order):
    Request → [CORS] → [Body] → [Cookies] → [Static] → [Log] → Router
                 │        │         │           │                │
                 └────────┴─────────┴───── error ────────────────┴──▶ [ErrorTranslator]
"""

import logging
import time
import uuid
from contextvars import ContextVar
from typing import Iterable, Optional, Tuple

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from gymn.pipeline.errors import ErrorTranslator

access_logger = logging.getLogger("gymn.access")

# Coroutine-local request ID, read by log lines anywhere in the request
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class Stage:
    """
    One link of the request chain.

    Subclasses override process(); decorate() is optional and runs on the
    outgoing response even when a later stage failed.
    """

    name = "stage"

    async def process(self, request: Request) -> Optional[Response]:
        return None

    def decorate(self, request: Request, response: Response) -> None:
        return None


class RequestPipeline:
    """Immutable ordered sequence of stages."""

    def __init__(self, stages: Iterable[Stage]):
        self.stages: Tuple[Stage, ...] = tuple(stages)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    async def run(self, request: Request, dispatch: RequestResponseEndpoint) -> Response:
        for stage in self.stages:
            response = await stage.process(request)
            if response is not None:
                return response
        return await dispatch(request)

    def decorate(self, request: Request, response: Response) -> None:
        for stage in self.stages:
            stage.decorate(request, response)


class PipelineMiddleware(BaseHTTPMiddleware):
    """
    Runs the RequestPipeline around route dispatch.

    This is the sink for every per-request failure: exceptions raised by
    a stage or escaping a route handler are converted by the
    ErrorTranslator here and never re-raised. HTTPException and request
    validation errors raised inside the router reach the same translator
    through FastAPI's exception handlers (see gymn.main).
    """

    def __init__(self, app: ASGIApp, pipeline: RequestPipeline, translator: ErrorTranslator):
        super().__init__(app)
        self.pipeline = pipeline
        self.translator = translator

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()

        # Client-provided ID wins so frontend error reports correlate
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        token = request_id_var.set(rid)
        request.state.request_id = rid

        try:
            try:
                response = await self.pipeline.run(request, call_next)
            except Exception as exc:
                response = self.translator.to_response(request, exc)

            self.pipeline.decorate(request, response)
            response.headers["X-Request-ID"] = rid
            self._log_access(request, response, start_time, rid)
            return response
        finally:
            request_id_var.reset(token)

    @staticmethod
    def _log_access(request: Request, response: Response, start_time: float, rid: str) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        access_logger.log(
            log_level,
            "%s %s %d %.1fms [%s]",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
