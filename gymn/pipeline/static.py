"""
Gymn API — Static Asset Stage
===============================

What:  Serves files from the public directory ahead of API routing.
How:   GET/HEAD paths are resolved inside the directory; a directory
       resolves to its index.html. Anything that is not an existing file
       inside the directory falls through to the next stage, so a missing
       asset ends at the router and then the 404 fallback.

Security:
    The resolved path must stay inside the public directory; "../"
    segments and symlinks pointing outside are never served.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import FileResponse, Response

from gymn.pipeline.base import Stage

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"


class StaticAssetStage(Stage):
    name = "static"

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).resolve()

    def lookup(self, url_path: str) -> Optional[Path]:
        """Return the file to serve for url_path, or None."""
        if not self.directory.is_dir():
            return None
        try:
            candidate = (self.directory / url_path.lstrip("/")).resolve()
            if candidate != self.directory and self.directory not in candidate.parents:
                return None
            if candidate.is_dir():
                candidate = candidate / INDEX_FILE
            if not candidate.is_file():
                return None
        except (OSError, ValueError):
            # embedded NUL bytes, over-long names
            return None
        return candidate

    async def process(self, request: Request) -> Optional[Response]:
        if request.method not in ("GET", "HEAD"):
            return None
        # Filesystem checks run off the event loop
        found = await run_in_threadpool(self.lookup, request.url.path)
        if found is None:
            return None
        logger.debug("Serving static asset %s", found)
        return FileResponse(found)
