"""
=============================================================================
SOCKET SERVER - Sequential TCP Accept Loop
=============================================================================

Owns the listening socket and hands each accepted connection to a
callback, one at a time.

=============================================================================
ONE CONNECTION AT A TIME
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   while running:                                                     │
    │       accept()  ──► Connection  ──► handler(conn)  ──► (returns)     │
    │          ▲                                              │            │
    │          └──────────────────────────────────────────────┘            │
    │                                                                      │
    │   The next client is accepted only after the previous one has been   │
    │   answered and closed. Clients arriving meanwhile wait in the        │
    │   kernel's listen backlog.                                           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

No threads, no locks: the only state the handler touches that outlives a
connection is the read-only ServerConfig. Going concurrent later means
running handler(conn) on a worker per connection; nothing it shares needs
a lock.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR
    Rebinding the port right after a restart would otherwise fail with
    "Address already in use" while old sockets sit in TIME_WAIT.

TCP_NODELAY
    Send the head immediately instead of waiting to coalesce it with body
    bytes (Nagle).

Accept timeout (1 second)
    accept() wakes up once a second to check whether shutdown() was
    called from a signal handler or another thread.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Low-level TCP server that accepts connections sequentially.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._bound_address: Optional[Tuple[str, int]] = None
        self._handled = 0

        # Set once listening; tests wait on it
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The address actually bound.

        Differs from the configured one when port 0 asked the OS to pick.
        """
        return self._bound_address or (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """
        Turn SIGTERM / SIGINT into a graceful shutdown.

        signal.signal() only works in the main thread, so a server started
        from a worker thread (as the tests do) skips this and relies on
        shutdown() being called.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"{signal_name} received, stopping")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen, and accept connections until shutdown().

        Raises:
            OSError: the address could not be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._bound_address = self._socket.getsockname()[:2]

        self._running = True
        self._setup_signals()
        self._ready_event.set()

        logger.info(f"Server listening on {self.address[0]}:{self.address[1]}")

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue  # Poll the running flag
            except OSError as e:
                if not self._running:
                    break
                # Transient (ECONNABORTED, EMFILE...): keep serving
                logger.error(f"Accept failed: {e}")
                continue

            logger.debug(f"Accepted {client_address[0]}:{client_address[1]}")

            try:
                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                )
            except OSError as e:
                logger.error(f"Failed to set up connection from {client_address[0]}: {e}")
                client_socket.close()
                continue

            try:
                connection_handler(conn)
            except Exception:
                # One connection must never take the server down
                logger.exception(f"[{conn.id}] Unhandled error in connection handler")
                conn.close()
            finally:
                self._handled += 1

    def shutdown(self):
        """
        Stop accepting connections.

        Safe to call from a signal handler or another thread, and more
        than once. The current connection (if any) is finished first.
        """
        logger.info("Stop requested, finishing current connection")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info(f"Listening socket closed, {self._handled} connection(s) served")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. False on timeout."""
        return self._ready_event.wait(timeout)
