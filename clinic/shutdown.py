"""
Process-wide shutdown signal.

SIGINT and SIGTERM trip a single :class:`threading.Event`.  Everything that
has to react to shutdown (the connection supervisor's backoff waits and the
lifecycle's serve loop) waits on that event instead of installing its own
handlers.
"""
from __future__ import annotations

import logging
import signal
import threading
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class ShutdownSignal:
    signals = (signal.SIGINT, signal.SIGTERM)

    def __init__(self):
        self._event = threading.Event()
        self._previous: Dict[int, object] = {}
        self.reason: Optional[str] = None

    def install(self) -> None:
        """Trap SIGINT/SIGTERM.  Must be called from the main thread."""
        for signum in self.signals:
            self._previous[signum] = signal.signal(signum, self._handle)

    def restore(self) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def trigger(self, reason: str = "requested") -> None:
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def _handle(self, signum, frame) -> None:
        name = signal.Signals(signum).name
        logger.warning("Received signal %s. Exiting as soon as possible!", name)
        self.trigger(name)
