"""
Gymn API — Body Parsing Stage
===============================

What:  Decodes JSON and URL-encoded form bodies into request.state.body.
How:   Content-Length is checked against the limit before reading; a body
       without one (chunked upload) is streamed and abandoned as soon as
       the running total passes the limit. Other content types are left
       untouched for the handler.

Result on request.state.body:
    application/json, */*+json          → dict or list (top level must be one)
    application/x-www-form-urlencoded   → dict; repeated keys become lists,
                                          bracket keys nest: a[b]=1 → {"a": {"b": "1"}},
                                          a[]=1&a[]=2 → {"a": ["1", "2"]}
                                          (numeric indices stay dict keys)
    empty body or other content type    → {}

Failures:
    body over the limit   → PayloadTooLargeError (413)
    undecodable body      → MalformedBodyError (400)
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl

from starlette.requests import Request
from starlette.responses import Response

from gymn.exceptions import MalformedBodyError, PayloadTooLargeError
from gymn.pipeline.base import Stage

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Bracket paths in form keys: name[a][b], name[]
BRACKET_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")
BRACKET_SEGMENT = re.compile(r"\[([^\[\]]*)\]")
MAX_FORM_DEPTH = 5


def media_type_of(request: Request) -> str:
    """Lower-cased media type without parameters ('' when absent)."""
    raw = request.headers.get("content-type", "")
    return raw.split(";", 1)[0].strip().lower()


def is_json_media_type(media_type: str) -> bool:
    return media_type == "application/json" or (
        media_type.startswith("application/") and media_type.endswith("+json")
    )


def split_form_key(key: str) -> List[str]:
    """
    'member[address][city]' → ['member', 'address', 'city'], 'days[]' →
    ['days', '']. Segments past MAX_FORM_DEPTH stay joined in the last one;
    keys that are not bracket paths are returned whole.
    """
    match = BRACKET_KEY.match(key)
    if not match:
        return [key]
    segments = BRACKET_SEGMENT.findall(match.group(2))
    if len(segments) > MAX_FORM_DEPTH:
        overflow = "".join(f"[{segment}]" for segment in segments[MAX_FORM_DEPTH:])
        segments = segments[:MAX_FORM_DEPTH] + [overflow]
    return [match.group(1)] + segments


def _store(target: Dict[str, Any], key: str, value: str) -> None:
    if key not in target:
        target[key] = value
    elif isinstance(target[key], list):
        target[key].append(value)
    else:
        target[key] = [target[key], value]


def parse_form(text: str) -> Dict[str, Any]:
    parsed: Dict[str, Any] = {}
    for key, value in parse_qsl(text, keep_blank_values=True, strict_parsing=False):
        path = split_form_key(key)
        target = parsed
        for segment in path[:-2]:
            child = target.setdefault(segment, {})
            if not isinstance(child, dict):
                # Already holds a plain value; keep this pair flat
                target = None
                break
            target = child
        if target is None:
            _store(parsed, key, value)
        elif len(path) == 1:
            _store(target, key, value)
        elif path[-1] == "":
            existing = target.setdefault(path[-2], [])
            if isinstance(existing, list):
                existing.append(value)
            else:
                target[path[-2]] = [existing, value]
        else:
            child = target.setdefault(path[-2], {})
            if isinstance(child, dict):
                _store(child, path[-1], value)
            else:
                _store(parsed, key, value)
    return parsed


class BodyParsingStage(Stage):
    name = "body"

    def __init__(self, limit: int):
        self.limit = limit

    async def process(self, request: Request) -> Optional[Response]:
        media_type = media_type_of(request)
        is_json = is_json_media_type(media_type)
        if not is_json and media_type != FORM_CONTENT_TYPE:
            request.state.body = {}
            return None

        self._check_declared_length(request)
        raw = await self._read_limited(request)

        if not raw:
            request.state.body = {}
            return None

        request.state.body = self._decode_json(raw, media_type) if is_json else self._decode_form(raw)
        return None

    async def _read_limited(self, request: Request) -> bytes:
        """Read the body, aborting as soon as the running total passes the limit."""
        chunks = []
        received = 0
        async for chunk in request.stream():
            received += len(chunk)
            if received > self.limit:
                raise PayloadTooLargeError(self.limit, received=received)
            chunks.append(chunk)
        raw = b"".join(chunks)
        # Cached like Request.body() so the route handler can read it again
        request._body = raw
        return raw

    def _check_declared_length(self, request: Request) -> None:
        declared = request.headers.get("content-length")
        if declared is None:
            return
        try:
            length = int(declared)
        except ValueError as exc:
            raise MalformedBodyError("Invalid Content-Length header") from exc
        if length > self.limit:
            raise PayloadTooLargeError(self.limit, received=length)

    @staticmethod
    def _decode_json(raw: bytes, media_type: str) -> Any:
        try:
            value = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise MalformedBodyError(f"Invalid JSON body: {exc}", content_type=media_type) from exc
        # Only objects and arrays are accepted at the top level
        if not isinstance(value, (dict, list)):
            raise MalformedBodyError(
                "JSON body must be an object or an array", content_type=media_type
            )
        return value

    @staticmethod
    def _decode_form(raw: bytes) -> Dict[str, Any]:
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedBodyError(
                "Form body is not valid UTF-8", content_type=FORM_CONTENT_TYPE
            ) from exc
        return parse_form(text)
