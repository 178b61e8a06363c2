"""
Gymn API — Application Configuration
======================================

What:  Immutable settings object built from environment variables.
How:   Pydantic Settings reads the process environment (or a .env file),
       coerces and validates types, and freezes the result.
Who:   Built once by gymn.server.run() and passed explicitly to
       create_app() and the database connector.
When:  Before any socket is bound or connection attempted.

Environment variables:
    MONGO_URI      required  MongoDB connection string
    JWT_SECRET     required  token signing key (used by the auth routes)
    PORT           optional  listening port (default 5000)
    NODE_ENV       optional  reported as "development" when unset; only an
                             explicit "development" enables verbose error bodies
    FRONTEND_URL   optional  extra origin appended to the CORS allow-list
    LOG_LEVEL      optional  DEBUG / INFO / WARNING / ERROR / CRITICAL
"""

from typing import List, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings

from gymn.exceptions import ConfigurationError

# Origins served by the Firebase-hosted frontend and local dev servers.
DEFAULT_ALLOWED_ORIGINS = (
    "https://gymn.web.app",
    "https://gymn.firebaseapp.com",
    "http://localhost:4200",
    "http://localhost:3000",
)

# 10 MiB, same unit the body parsers use
DEFAULT_MAX_BODY_SIZE = 10 * 1024 * 1024

DEFAULT_ENVIRONMENT = "development"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Required values (MONGO_URI, JWT_SECRET) default to None so that a
    missing one is reported by preflight() with a readable message rather
    than a pydantic traceback.
    """

    # ── Secrets & Database ────────────────────────────────────────────────
    mongo_uri: Optional[str] = Field(default=None)
    jwt_secret: Optional[str] = Field(default=None)

    db_server_selection_timeout_ms: int = Field(default=5000, ge=100)
    db_socket_timeout_ms: int = Field(default=45000, ge=1000)

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000, ge=1, le=65535)
    node_env: Optional[str] = Field(default=None)
    log_level: str = Field(default="INFO")

    # ── HTTP pipeline ─────────────────────────────────────────────────────
    frontend_url: Optional[str] = Field(default=None)
    max_body_size: int = Field(default=DEFAULT_MAX_BODY_SIZE, ge=1)
    public_dir: str = Field(default="public")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
        "frozen": True,
    }

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    @field_validator("mongo_uri", "jwt_secret", "frontend_url", "node_env")
    @classmethod
    def blank_as_missing(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def environment(self) -> str:
        """NODE_ENV as reported by /health and the startup banner."""
        return self.node_env or DEFAULT_ENVIRONMENT

    @property
    def is_development(self) -> bool:
        # Diagnostics in error bodies need NODE_ENV=development spelled out
        return self.node_env == DEFAULT_ENVIRONMENT

    @property
    def allowed_origins(self) -> List[str]:
        """
        Ordered CORS allow-list: the fixed frontend origins, then
        FRONTEND_URL when configured.
        """
        origins = list(DEFAULT_ALLOWED_ORIGINS)
        if self.frontend_url:
            origins.append(self.frontend_url)
        return origins

    def preflight(self) -> None:
        """
        What:  Verifies the values the process cannot start without.
        When:  Called by gymn.server.run() before the app is built.
        Raises ConfigurationError listing every missing variable.
        """
        missing = []
        if not self.jwt_secret:
            missing.append("JWT_SECRET")
        if not self.mongo_uri:
            missing.append("MONGO_URI")
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: " + ", ".join(missing),
                context={"missing": missing},
            )


def load_settings(**overrides) -> Settings:
    """
    Build the settings object, converting pydantic validation failures
    (e.g. PORT=abc) into ConfigurationError.
    """
    try:
        return Settings(**overrides)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration: {exc.error_count()} error(s)",
            context={"errors": [error["msg"] for error in exc.errors()]},
        ) from exc
