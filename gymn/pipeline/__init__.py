"""
Gymn API — Request Pipeline Package
=====================================

What:  The ordered stages every request passes through before routing.

Stage order (build_pipeline):
    1. cors     CorsStage           allow-list check, preflight 204
    2. body     BodyParsingStage    JSON / form decode, 10 MiB cap
    3. cookies  CookieParsingStage  request.state.cookies
    4. static   StaticAssetStage    files under the public directory
    5. logging  RequestLoggingStage method, path, origin
    → router (health, route groups, 404 fallback)
    → ErrorTranslator for anything raised along the way
"""

from gymn.config import Settings
from gymn.pipeline.base import PipelineMiddleware, RequestPipeline, Stage, request_id_var
from gymn.pipeline.body import BodyParsingStage
from gymn.pipeline.cookies import CookieParsingStage
from gymn.pipeline.cors import CorsPolicy, CorsStage
from gymn.pipeline.errors import ErrorTranslator
from gymn.pipeline.logging import RequestLoggingStage
from gymn.pipeline.static import StaticAssetStage

__all__ = [
    "BodyParsingStage",
    "CookieParsingStage",
    "CorsPolicy",
    "CorsStage",
    "ErrorTranslator",
    "PipelineMiddleware",
    "RequestLoggingStage",
    "RequestPipeline",
    "Stage",
    "StaticAssetStage",
    "build_pipeline",
    "request_id_var",
]


def build_pipeline(settings: Settings) -> RequestPipeline:
    return RequestPipeline(
        [
            CorsStage(CorsPolicy(settings.allowed_origins)),
            BodyParsingStage(limit=settings.max_body_size),
            CookieParsingStage(),
            StaticAssetStage(settings.public_dir),
            RequestLoggingStage(),
        ]
    )
