"""
Gymn API — MongoDB Connection Management
==========================================

What:  Owns the single long-lived MongoDB client shared by every request.
How:   MongoConnectionManager wraps a motor AsyncIOMotorClient, confirms
       the connection with a ping, records where it landed, and exposes a
       narrow API (connect / close / state / database).
Who:   Built by gymn.server.run() from Settings; connected in the app
       lifespan; read by route collaborators through get_database().

Connection Policy:
    - One attempt, bounded by serverSelectionTimeoutMS (5000 ms default).
      A failure raises DatabaseConnectionError and the lifespan ends the
      process with status 1. There is no retry loop here.
    - After connecting, driver lifecycle events are only observed: the
      ConnectionEventLogger logs them and updates the manager's state,
      reconnection is left entirely to the driver.

State machine (ConnectionState):
    disconnected ──connect()──▶ connecting ──ping ok──────▶ connected
    connecting   ──ping fails─▶ error
    connected    ──heartbeat fails──▶ error ──heartbeat ok──▶ connected
    any          ──close() / server gone──▶ disconnected
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import monitoring
from pymongo.errors import InvalidOperation, PyMongoError

from gymn.exceptions import DatabaseConnectionError

logger = logging.getLogger(__name__)

# Database name used when the URI does not name one
DEFAULT_DATABASE_NAME = "test"


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class ConnectionInfo:
    """Where the connection landed, recorded for observability."""

    name: str
    host: Optional[str]
    port: Optional[int]


# ══════════════════════════════════════════════════════════════════════════
# Driver Event Observer
# ══════════════════════════════════════════════════════════════════════════

class ConnectionEventLogger(monitoring.ServerListener, monitoring.ServerHeartbeatListener):
    """
    Passive observer of pymongo server events.

    pymongo calls these methods from its monitor threads, so they only log
    and assign the manager's state; they never touch the event loop.
    Only transitions are logged: a steady stream of successful heartbeats
    produces no output.
    """

    def __init__(self, manager: "MongoConnectionManager"):
        self._manager = manager

    # ── ServerListener ────────────────────────────────────────────────────

    def opened(self, event: monitoring.ServerOpeningEvent) -> None:
        logger.debug("MongoDB server %s:%s discovered", *event.server_address)

    def description_changed(self, event: monitoring.ServerDescriptionChangedEvent) -> None:
        was_known = event.previous_description.is_server_type_known
        is_known = event.new_description.is_server_type_known
        if is_known and not was_known:
            self._manager._transition(ConnectionState.CONNECTED)
            logger.info("MongoDB connected (%s:%s)", *event.server_address)
        elif was_known and not is_known:
            self._manager._transition(ConnectionState.DISCONNECTED)
            logger.warning("MongoDB disconnected (%s:%s)", *event.server_address)

    def closed(self, event: monitoring.ServerClosedEvent) -> None:
        self._manager._transition(ConnectionState.DISCONNECTED)
        logger.info("MongoDB connection to %s:%s closed", *event.server_address)

    # ── ServerHeartbeatListener ───────────────────────────────────────────

    def started(self, event: monitoring.ServerHeartbeatStartedEvent) -> None:
        pass

    def succeeded(self, event: monitoring.ServerHeartbeatSucceededEvent) -> None:
        if self._manager.state is ConnectionState.ERROR:
            self._manager._transition(ConnectionState.CONNECTED)
            logger.info("MongoDB connection recovered (%s:%s)", *event.connection_id)

    def failed(self, event: monitoring.ServerHeartbeatFailedEvent) -> None:
        if self._manager.state is not ConnectionState.ERROR:
            self._manager._transition(ConnectionState.ERROR)
            logger.error(
                "MongoDB connection error (%s:%s): %s", *event.connection_id, event.reply
            )


# ══════════════════════════════════════════════════════════════════════════
# Connection Manager
# ══════════════════════════════════════════════════════════════════════════

class MongoConnectionManager:
    """
    Explicitly owned MongoDB connection.

    Args:
        uri:                          MongoDB connection string (may be None;
                                      connect() then fails fast)
        server_selection_timeout_ms:  bound on the initial connection attempt
        socket_timeout_ms:            per-operation socket timeout
        client_factory:               client constructor, AsyncIOMotorClient
                                      unless a test substitutes a double

    The state attribute is written by connect()/close() and by the driver
    event observer; everything else only reads it.
    """

    def __init__(
        self,
        uri: Optional[str],
        server_selection_timeout_ms: int = 5000,
        socket_timeout_ms: int = 45000,
        client_factory: Callable[..., Any] = AsyncIOMotorClient,
    ):
        self._uri = uri
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._socket_timeout_ms = socket_timeout_ms
        self._client_factory = client_factory
        self._client: Optional[Any] = None
        self._database: Optional[AsyncIOMotorDatabase] = None
        self._state = ConnectionState.DISCONNECTED
        self.info: Optional[ConnectionInfo] = None
        self.listener = ConnectionEventLogger(self)

    @classmethod
    def from_settings(cls, settings) -> "MongoConnectionManager":
        return cls(
            settings.mongo_uri,
            server_selection_timeout_ms=settings.db_server_selection_timeout_ms,
            socket_timeout_ms=settings.db_socket_timeout_ms,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    def _transition(self, state: ConnectionState) -> None:
        if state is not self._state:
            logger.debug("MongoDB state %s -> %s", self._state.value, state.value)
        self._state = state

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """The connected database handle; raises if connect() has not succeeded."""
        if self._database is None:
            raise DatabaseConnectionError("Database is not connected")
        return self._database

    async def connect(self) -> ConnectionInfo:
        """
        Open the client and confirm the server answers a ping.

        Returns the ConnectionInfo that was logged.
        Raises DatabaseConnectionError when the URI is missing or
        malformed, or when no server answers within the selection timeout.
        """
        if not self._uri:
            raise DatabaseConnectionError("MONGO_URI no está definida en las variables de entorno")

        self._transition(ConnectionState.CONNECTING)
        try:
            self._client = self._client_factory(
                self._uri,
                serverSelectionTimeoutMS=self._server_selection_timeout_ms,
                socketTimeoutMS=self._socket_timeout_ms,
                retryWrites=True,
                w="majority",
                event_listeners=[self.listener],
            )
            await self._client.admin.command("ping")
            self._database = self._client.get_default_database(DEFAULT_DATABASE_NAME)
        # The URI parser raises a bare ValueError for e.g. an out-of-range port
        except (PyMongoError, ValueError) as exc:
            self._transition(ConnectionState.ERROR)
            raise DatabaseConnectionError(
                f"Error de conexión: {exc}",
                context={"error_type": type(exc).__name__},
            ) from exc

        self._transition(ConnectionState.CONNECTED)
        host, port = self._server_address()
        self.info = ConnectionInfo(name=self._database.name, host=host, port=port)

        logger.info("MongoDB connected")
        logger.info("Database: %s", self.info.name)
        logger.info("Host: %s:%s", self.info.host, self.info.port)
        return self.info

    def _server_address(self):
        # address raises for load-balanced / mongos deployments
        try:
            address = self._client.address
        except (InvalidOperation, PyMongoError):
            return None, None
        return address if address else (None, None)

    async def close(self) -> None:
        """
        Close the client. A manager that never connected closes trivially.

        Raises DatabaseConnectionError if the driver fails to close.
        """
        if self._client is None:
            self._transition(ConnectionState.DISCONNECTED)
            return
        try:
            self._client.close()
        except PyMongoError as exc:
            raise DatabaseConnectionError(f"Error al cerrar la conexión: {exc}") from exc
        finally:
            self._client = None
            self._database = None
        self._transition(ConnectionState.DISCONNECTED)


# ── Route Dependency ──────────────────────────────────────────────────────
def get_database(request: Request) -> AsyncIOMotorDatabase:
    """
    FastAPI dependency that provides the shared database handle.

    Example usage in a route collaborator:
        @router.get("")
        async def list_classes(db = Depends(get_database)):
            return await db.classes.find().to_list(100)

    Raises DatabaseConnectionError (503 via the error stage) while the
    connection is not established.
    """
    manager: MongoConnectionManager = request.app.state.database
    return manager.database
