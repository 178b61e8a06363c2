"""
Gymn API — CORS Policy Stage
==============================

What:  Decides whether a cross-origin request may proceed.
How:   Exact string match of the Origin header against the allow-list
       built at startup (Settings.allowed_origins).

Decision table:
    no Origin header (curl, mobile apps, server-to-server)  → allowed
    Origin in allow-list                                     → allowed
    anything else                                            → CorsRejectedError (403)

Allowed preflight (OPTIONS) requests are answered here with 204 and are
never forwarded to route handlers. Allowed cross-origin responses,
including error responses, carry credentialed CORS headers.

Starlette's CORSMiddleware is not used: it answers a bad preflight with
a plain-text 400 and silently serves disallowed simple requests, while
this gateway blocks both and reports through the error stage.
"""

import logging
from typing import Iterable, Optional, Tuple

from starlette.requests import Request
from starlette.responses import Response

from gymn.exceptions import CorsRejectedError
from gymn.pipeline.base import Stage

logger = logging.getLogger(__name__)

ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH")
ALLOWED_HEADERS = ("Content-Type", "Authorization", "X-Requested-With", "Accept", "Origin")


class CorsPolicy:
    """Allow-list of origins plus the methods and headers granted to them."""

    def __init__(
        self,
        origins: Iterable[str],
        methods: Iterable[str] = ALLOWED_METHODS,
        headers: Iterable[str] = ALLOWED_HEADERS,
        allow_credentials: bool = True,
    ):
        self.origins: Tuple[str, ...] = tuple(origins)
        self.methods: Tuple[str, ...] = tuple(methods)
        self.headers: Tuple[str, ...] = tuple(headers)
        self.allow_credentials = allow_credentials

    def is_allowed(self, origin: Optional[str]) -> bool:
        if not origin:
            return True
        return origin in self.origins


class CorsStage(Stage):
    name = "cors"

    def __init__(self, policy: CorsPolicy):
        self.policy = policy

    async def process(self, request: Request) -> Optional[Response]:
        origin = request.headers.get("origin")
        if not self.policy.is_allowed(origin):
            logger.warning("Origin blocked by CORS: %s", origin)
            raise CorsRejectedError(origin)

        request.state.cors_origin = origin or None

        if request.method == "OPTIONS":
            return Response(
                status_code=204,
                headers={
                    "Access-Control-Allow-Methods": ",".join(self.policy.methods),
                    "Access-Control-Allow-Headers": ",".join(self.policy.headers),
                },
            )
        return None

    def decorate(self, request: Request, response: Response) -> None:
        # Unset when the request was rejected before reaching this stage
        origin = getattr(request.state, "cors_origin", None)
        if not origin:
            return
        response.headers["Access-Control-Allow-Origin"] = origin
        if self.policy.allow_credentials:
            response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers.add_vary_header("Origin")
