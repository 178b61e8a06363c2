"""
Gymn API — Response Schemas
=============================

What:  Pydantic models for the bodies the gateway itself produces.
Who:   Used as response_model by the health and fallback routes, and as
       OpenAPI documentation of the error envelope.

Every body carries a boolean `success`; failures add `msg`. The
development-only error fields (stack, path, method) are optional.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """
    What:  Liveness answer for the hosting platform's health probe.
    When:  Always 200 while the process serves HTTP, whatever the
           database connection state.
    """

    success: bool = Field(default=True)
    message: str = Field(description="Human-readable status line")
    timestamp: datetime = Field(description="Server time (UTC ISO 8601)")
    environment: str = Field(description="Value of NODE_ENV")


class NotFoundResponse(BaseModel):
    """Body of the 404 fallback: echoes what was asked for."""

    success: bool = Field(default=False)
    msg: str = Field(default="Ruta no encontrada")
    path: str = Field(description="Request path that matched no route")
    method: str = Field(description="HTTP method of the request")


class ErrorResponse(BaseModel):
    """
    Envelope written by the centralized error stage.

    Production responses carry only success and msg; development adds the
    traceback and request coordinates.
    """

    success: bool = Field(default=False)
    msg: str = Field(description="Error message, generic outside development")
    stack: Optional[str] = Field(default=None, description="Traceback (development only)")
    path: Optional[str] = Field(default=None, description="Request path (development only)")
    method: Optional[str] = Field(default=None, description="HTTP method (development only)")
