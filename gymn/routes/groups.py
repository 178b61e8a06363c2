"""
Gymn API — Route Group Mount Table
====================================

What:  The five API prefixes the gateway exposes and how collaborator
       routers are attached to them.
How:   create_app() receives a mapping of group name → APIRouter. Each
       router is included under its prefix, in table order. A group with
       no router supplied is mounted empty, so its paths fall through to
       the 404 fallback until the handlers are plugged in.

Mount table:
    auth          /api/auth
    users         /api/users
    instructores  /api/instructores
    classes       /api/classes
    youtube       /api/youtube
"""

import logging
from typing import Mapping, NamedTuple, Optional, Tuple

from fastapi import APIRouter, FastAPI

from gymn.schemas.responses import ErrorResponse

logger = logging.getLogger(__name__)


class RouteGroup(NamedTuple):
    name: str
    prefix: str
    tag: str


ROUTE_GROUPS: Tuple[RouteGroup, ...] = (
    RouteGroup("auth", "/api/auth", "Auth"),
    RouteGroup("users", "/api/users", "Users"),
    RouteGroup("instructores", "/api/instructores", "Instructors"),
    RouteGroup("classes", "/api/classes", "Classes"),
    RouteGroup("youtube", "/api/youtube", "YouTube"),
)

# Documented on every group; the bodies come from the error stage
GROUP_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed request body"},
    403: {"model": ErrorResponse, "description": "Origin blocked by CORS"},
    413: {"model": ErrorResponse, "description": "Request body over the size limit"},
    500: {"model": ErrorResponse, "description": "Unhandled error"},
}


def mount_route_groups(app: FastAPI, routers: Optional[Mapping[str, APIRouter]] = None) -> None:
    """
    Include every route group under its prefix.

    Raises ValueError for a router keyed by an unknown group name, which
    would otherwise be silently left unmounted.
    """
    routers = dict(routers or {})
    known = {group.name for group in ROUTE_GROUPS}
    unknown = sorted(set(routers) - known)
    if unknown:
        raise ValueError(f"Unknown route group(s): {', '.join(unknown)}")

    for group in ROUTE_GROUPS:
        router = routers.get(group.name)
        if router is None:
            logger.debug("Route group %s mounted without handlers", group.prefix)
            router = APIRouter()
        app.include_router(
            router,
            prefix=group.prefix,
            tags=[group.tag],
            responses=GROUP_ERROR_RESPONSES,
        )
