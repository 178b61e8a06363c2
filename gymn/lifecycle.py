"""
Gymn API — Process Lifecycle
==============================

What:  Tracks the exit status the process should end with and lets code
       running inside the event loop ask the server to stop.
Who:   Created by gymn.server.run(); consulted by the app lifespan.

Exit codes:
    0  clean shutdown (signal received, database closed)
    1  startup failure, database connect failure, or failed close
"""

import asyncio
import logging
import sys
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class ProcessLifecycle:
    """
    Exit-code holder bound to the running uvicorn server.

    fail() is the single fail-fast path for errors detected after the
    event loop has started: it records status 1 and sets the server's
    should_exit flag so uvicorn runs its normal shutdown (closing the
    database) before run() exits. Without an attached server there is
    nothing to stop gracefully and SystemExit(1) is raised immediately.
    """

    def __init__(self) -> None:
        self.exit_code = EXIT_OK
        self._server: Optional[Any] = None

    def attach(self, server: Any) -> None:
        self._server = server

    def fail(self, reason: str) -> None:
        logger.critical("Fatal: %s, shutting down", reason)
        self.exit_code = EXIT_FAILURE
        if self._server is None:
            raise SystemExit(EXIT_FAILURE)
        self._server.should_exit = True


# ══════════════════════════════════════════════════════════════════════════
# Process-level error hooks
# ══════════════════════════════════════════════════════════════════════════

def log_uncaught_exception(exc_type, exc_value, exc_traceback) -> None:
    """
    sys.excepthook replacement: logs the exception at CRITICAL.

    The interpreter still terminates with status 1 afterwards; Ctrl-C at
    the prompt keeps the default handler.
    """
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical(
        "Uncaught exception: %s",
        exc_value,
        exc_info=(exc_type, exc_value, exc_traceback),
    )


def log_unhandled_async_error(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """
    Event-loop exception handler: failures of tasks nobody awaited are
    logged and the loop keeps serving.
    """
    exc = context.get("exception")
    message = context.get("message", "Unhandled error in event loop")
    if exc is not None:
        logger.error("Unhandled async error: %s", message, exc_info=exc)
    else:
        logger.error("Unhandled async error: %s", message)


def install_excepthook() -> None:
    sys.excepthook = log_uncaught_exception
