"""
Service lifecycle.

:class:`Lifecycle` takes the process through::

    INIT -> CONNECTING_STORE -> SERVING -> DRAINING -> CLOSED

Connecting blocks on :func:`clinic.supervisor.establish_connection`.  Serving
runs the listener on a background thread while the calling thread waits for
the shutdown signal.  Draining stops the accept loop, gives in-flight requests
``config.shutdown_timeout`` seconds, aborts the rest and finally closes the
store.  The store is closed on every path out of :meth:`Lifecycle.run`.
"""
from __future__ import annotations

import enum
import logging
import threading
from typing import List, Optional, Tuple

from .config import ServiceConfig
from .exceptions import ConnectError, ListenError, ShutdownError, StoreError
from .server import DrainingWSGIServer
from .supervisor import RetryPolicy, establish_connection

logger = logging.getLogger(__name__)


class LifecycleState(enum.Enum):
    INIT = "init"
    CONNECTING_STORE = "connecting_store"
    SERVING = "serving"
    DRAINING = "draining"
    CLOSED = "closed"


class Lifecycle:

    def __init__(
        self,
        config: ServiceConfig,
        store,
        shutdown,
        application,
        host: str = "",
        policy: Optional[RetryPolicy] = None,
        poll_interval: float = 0.5,
    ):
        self.config = config
        self.store = store
        self.shutdown = shutdown
        self.application = application
        self.host = host
        self.policy = policy or RetryPolicy()
        self.poll_interval = poll_interval

        self.state = LifecycleState.INIT
        self.server: Optional[DrainingWSGIServer] = None
        self.serving = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def server_address(self) -> Optional[Tuple[str, int]]:
        if self.server is None:
            return None
        return self.server.server_address[:2]

    def run(self) -> None:
        """Serve until the shutdown signal fires.

        Raises :class:`ConnectError` or :class:`ListenError` when startup
        fails and :class:`ShutdownError` when shutdown was not clean.
        """
        self._enter(LifecycleState.CONNECTING_STORE)
        try:
            establish_connection(self.store, self.shutdown, self.policy)
            self._listen()
        except (ConnectError, ListenError):
            self._enter(LifecycleState.CLOSED)
            self._close_after_failed_start()
            raise

        self._enter(LifecycleState.SERVING)
        self.serving.set()
        while not self.shutdown.wait(self.poll_interval):
            pass

        self._enter(LifecycleState.DRAINING)
        errors = self._drain()
        self._enter(LifecycleState.CLOSED)
        if errors:
            raise ShutdownError("; ".join(errors))

    def _enter(self, state: LifecycleState) -> None:
        logger.info("Lifecycle %s -> %s", self.state.value, state.value)
        self.state = state

    def _listen(self) -> None:
        address = (self.host, self.config.port)
        try:
            self.server = DrainingWSGIServer(address, request_timeout=self.config.request_timeout)
        except OSError as exc:
            raise ListenError(f"failed to listen on {self.host or '*'}:{self.config.port}: {exc}") from exc
        self.server.set_app(self.application)
        self._thread = threading.Thread(
            target=self.server.serve_forever,
            name="ferrum-http",
            daemon=True,
        )
        self._thread.start()
        host, port = self.server_address
        logger.info("Listening for HTTP requests on %s:%d", host, port)

    def _drain(self) -> List[str]:
        errors = []
        self.server.shutdown()
        self._thread.join()
        self.server.server_close()

        if not self.server.drain(self.config.shutdown_timeout):
            errors.append(
                "HTTP server shutdown error: requests still running after "
                f"{self.config.shutdown_timeout:g}s were aborted"
            )
        try:
            self.store.close()
        except StoreError as exc:
            errors.append(f"database connection close error: {exc}")
        return errors

    def _close_after_failed_start(self) -> None:
        try:
            self.store.close()
        except StoreError as exc:
            logger.error("Failed to close the database connection: %s", exc)
