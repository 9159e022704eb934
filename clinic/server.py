"""
The HTTP listener.

:class:`DrainingWSGIServer` is Django's threaded development server with
connection bookkeeping added, so shutdown can tell in-flight requests from
idle keep-alive connections:

1. ``shutdown()`` (inherited) stops the accept loop;
2. :meth:`DrainingWSGIServer.drain` waits until no request is being handled,
   up to a timeout;
3. every connection still open afterwards is aborted.

Each connection runs on its own thread and gets the request timeout as its
socket timeout.
"""
from __future__ import annotations

import logging
import socket
import threading
from typing import Optional, Set

from django.core.servers.basehttp import ThreadedWSGIServer, WSGIRequestHandler

logger = logging.getLogger(__name__)


class RequestHandler(WSGIRequestHandler):

    @property
    def timeout(self) -> Optional[float]:
        return self.server.request_timeout

    def parse_request(self):
        # The request line has been read: the connection is no longer idle.
        self.server.request_started(self.request)
        return super().parse_request()

    def handle_one_request(self):
        try:
            super().handle_one_request()
        except socket.timeout as exc:
            logger.debug("Closing connection from %s: %s", self.client_address[0], exc)
            self.close_connection = True
        finally:
            self.server.request_finished(self.request)
            if self.server.draining:
                self.close_connection = True


class DrainingWSGIServer(ThreadedWSGIServer):
    # server_close() must not join request threads; drain() bounds the wait
    block_on_close = False

    def __init__(self, server_address, handler_class=RequestHandler, *, request_timeout=None, **kwargs):
        self.request_timeout = request_timeout
        self.draining = False
        self._connections: Set[socket.socket] = set()
        self._busy: Set[socket.socket] = set()
        self._state = threading.Condition()
        kwargs.setdefault("ipv6", ":" in server_address[0])
        super().__init__(server_address, handler_class, **kwargs)

    @property
    def in_flight(self) -> int:
        with self._state:
            return len(self._busy)

    def process_request(self, request, client_address):
        with self._state:
            self._connections.add(request)
        super().process_request(request, client_address)

    def shutdown_request(self, request):
        try:
            super().shutdown_request(request)
        finally:
            with self._state:
                self._connections.discard(request)
                self._busy.discard(request)
                self._state.notify_all()

    def request_started(self, request) -> None:
        with self._state:
            self._busy.add(request)

    def request_finished(self, request) -> None:
        with self._state:
            self._busy.discard(request)
            self._state.notify_all()

    def drain(self, timeout: float) -> bool:
        """Wait for in-flight requests, then abort whatever is still open.

        Returns ``False`` when the timeout expired with requests still
        running.
        """
        with self._state:
            self.draining = True
            clean = self._state.wait_for(lambda: not self._busy, timeout)
            leftovers = list(self._connections)

        for sock in leftovers:
            try:
                sock.shutdown(socket.SHUT_RDWR)
            except OSError as exc:
                logger.debug("Connection already gone while aborting it: %s", exc)
        if leftovers:
            logger.info("Aborted %d open connection(s)", len(leftovers))
        return clean
