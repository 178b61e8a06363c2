"""
Gymn API — Process Entry Point
================================

What:  Starts the gateway as a long-running process.
How:   preflight → logging → app → uvicorn, then exit with the status the
       lifecycle recorded.
Who:   `gymn-server` console script and `python -m gymn`.

Startup order:
    1. Install the uncaught-exception hook
    2. Load settings and run preflight; any problem exits with status 1
       before a socket is bound
    3. Configure logging at LOG_LEVEL
    4. Build the app (database connect starts in its lifespan)
    5. Serve until SIGINT / SIGTERM, then exit 0, or 1 if the lifecycle
       recorded a failure (connect failure, failed close)
"""

import contextlib
import logging
import sys

import uvicorn

from gymn.config import load_settings
from gymn.database import MongoConnectionManager
from gymn.exceptions import ConfigurationError
from gymn.lifecycle import EXIT_FAILURE, ProcessLifecycle, install_excepthook
from gymn.main import create_app, setup_logging

logger = logging.getLogger(__name__)


class GatewayServer(uvicorn.Server):
    """
    uvicorn server whose SIGINT / SIGTERM only trigger the graceful
    shutdown. The captured signal is not re-raised afterwards, so the
    process exits with the lifecycle's status.
    """

    @contextlib.contextmanager
    def capture_signals(self):
        with super().capture_signals():
            yield
            self._captured_signals.clear()


def run() -> None:
    install_excepthook()
    # Preflight problems must be visible before LOG_LEVEL is known
    setup_logging()

    try:
        settings = load_settings()
        settings.preflight()
    except ConfigurationError as exc:
        logger.critical("FATAL: %s", exc.message)
        for detail in exc.context.get("errors", []):
            logger.critical("  - %s", detail)
        sys.exit(EXIT_FAILURE)

    setup_logging(settings.log_level)

    lifecycle = ProcessLifecycle()
    app = create_app(
        settings,
        database=MongoConnectionManager.from_settings(settings),
        lifecycle=lifecycle,
    )

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_config=None,  # keep the handlers installed by setup_logging
        log_level=settings.log_level.lower(),
    )
    server = GatewayServer(config)
    lifecycle.attach(server)
    server.run()

    sys.exit(lifecycle.exit_code)
