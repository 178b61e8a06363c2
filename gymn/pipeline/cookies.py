"""
Gymn API — Cookie Parsing Stage
=================================

Exposes the request's cookies as a plain dict on request.state.cookies.
Values are percent-decoded, and values written as "j:<json>" by the
frontend's cookie helpers are decoded to the JSON value. A cookie that
fails to decode keeps its raw value; the stage itself never fails.
"""

import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import unquote

from starlette.requests import Request
from starlette.responses import Response

from gymn.pipeline.base import Stage

logger = logging.getLogger(__name__)

JSON_COOKIE_PREFIX = "j:"


def decode_cookie_value(value: str) -> Any:
    decoded = unquote(value)
    if decoded.startswith(JSON_COOKIE_PREFIX):
        try:
            return json.loads(decoded[len(JSON_COOKIE_PREFIX):])
        except json.JSONDecodeError:
            logger.debug("Cookie value is not valid JSON, keeping raw string")
    return decoded


class CookieParsingStage(Stage):
    name = "cookies"

    async def process(self, request: Request) -> Optional[Response]:
        cookies: Dict[str, Any] = {}
        for key, value in request.cookies.items():
            cookies[key] = decode_cookie_value(value)
        request.state.cookies = cookies
        return None
