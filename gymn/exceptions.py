"""
Gymn API — Custom Exception Hierarchy
=======================================

What:  Application-specific exceptions, each carrying the HTTP status the
       centralized error stage should answer with.
How:   Pipeline stages and route collaborators raise; the ErrorTranslator
       (gymn.pipeline.errors) turns any exception into the JSON error
       body. Startup-fatal errors never reach HTTP: gymn.server catches
       them and exits with status 1.

Exception Hierarchy:
    GymnError (base, 500)
    ├── ConfigurationError       → startup-fatal (missing / invalid env)
    ├── DatabaseConnectionError  → startup-fatal connect, or failed close
    ├── CorsRejectedError        → 403 Forbidden
    ├── PayloadTooLargeError     → 413 Payload Too Large
    └── MalformedBodyError       → 400 Bad Request
"""

from typing import Any, Dict, Optional


class GymnError(Exception):
    """
    Base exception for all Gymn application errors.

    Attributes:
        message:      Human-readable description (shown in development)
        status_code:  HTTP status used by the error stage
        context:      Extra debug info, logged but never returned
    """

    status_code = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context = context or {}
        super().__init__(self.message)


class ConfigurationError(GymnError):
    """Required configuration is missing or malformed; the process cannot start."""


class DatabaseConnectionError(GymnError):
    """
    Raised when the MongoDB connection cannot be established or closed.

    There is no retry: the initial connect is fail-fast and the process
    supervisor is expected to restart the service.
    """

    def __init__(
        self,
        message: str = "Database connection failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, status_code=503, context=context)


class CorsRejectedError(GymnError):
    """
    Raised by the CORS stage when a request's Origin is not allow-listed.

    HTTP: 403 Forbidden. The request never reaches a route handler.
    """

    status_code = 403

    def __init__(self, origin: str):
        super().__init__(message="No permitido por CORS", context={"origin": origin})
        self.origin = origin


class PayloadTooLargeError(GymnError):
    """Request body exceeds the configured limit (HTTP 413)."""

    status_code = 413

    def __init__(self, limit: int, received: Optional[int] = None):
        ctx: Dict[str, Any] = {"limit": limit}
        if received is not None:
            ctx["received"] = received
        super().__init__(message="request entity too large", context=ctx)
        self.limit = limit


class MalformedBodyError(GymnError):
    """Request body could not be decoded as its declared content type (HTTP 400)."""

    status_code = 400

    def __init__(self, reason: str, content_type: Optional[str] = None):
        ctx: Dict[str, Any] = {}
        if content_type:
            ctx["content_type"] = content_type
        super().__init__(message=reason, context=ctx)
