"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an accepted client socket for exactly one request/response exchange.

=============================================================================
ONE READ, ONE RESPONSE, CLOSE
=============================================================================

TCP is a byte stream: a single recv() may return only part of what the
client sent. A general HTTP server keeps reading until it sees the blank
line that ends the headers. This one does not need to: it only looks for
"GET <target> " at the start of the request, which fits comfortably in
the first segment a client sends. So the request is read ONCE, up to
buffer_size bytes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   recv(4096)  ──►  b"GET /index.html HTTP/1.1\r\nHost: ...\r\n\r\n"  │
    │                                                                      │
    │   b""         ──►  client closed without sending: no response        │
    │   timeout     ──►  client connected but stayed silent: no response   │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Anything beyond the first buffer (huge cookies, request bodies) is never
read. It is drained, best effort, when the connection closes so the
kernel does not answer the client with a reset.

=============================================================================
CONNECTION STATES
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSED

There is no keep-alive state: every response carries "Connection: close"
and the socket is closed right after it.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


# Total time close() spends discarding unread client bytes
DRAIN_TIMEOUT = 0.5


class ConnectionState(Enum):
    """Where a connection is in its single exchange."""

    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket (owned: closed by close()).
        address: Client's (ip, port) tuple.
        id: Short identifier used in log lines.
        state: Current connection state.
        created_at: Timestamp when the connection was accepted.
        bytes_sent: Total bytes written, head included.
    """

    socket: socket.socket
    address: tuple = ("", 0)

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_sent: int = 0

    # Configuration (passed from ServerConfig)
    buffer_size: int = 4096
    timeout: Optional[float] = 30.0

    def __post_init__(self):
        self.socket.setblocking(True)
        # None leaves the socket blocking without a deadline
        self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0] if self.address else ""

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read the request with a single recv() of up to buffer_size bytes.

        Returns:
            The bytes received, or None if the client closed, reset, or
            timed out before sending anything.
        """
        self.state = ConnectionState.READING
        try:
            data = self.socket.recv(self.buffer_size)
        except socket.timeout:
            logger.debug(f"[{self.id}] Request read timed out")
            return None
        except (ConnectionResetError, BrokenPipeError):
            return None

        if not data:
            return None

        self.state = ConnectionState.PROCESSING
        return data

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Uses sendall() so a partial write never leaves a hole in the
        response.

        Returns:
            True if sent, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
        except OSError as e:
            # ConnectionResetError, BrokenPipeError, socket.timeout
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False
        self.bytes_sent += len(data)
        return True

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection.

        1. shutdown(SHUT_WR): FIN to the client, which is reading until EOF
        2. drain whatever the client sent that was never read, for at
           most DRAIN_TIMEOUT seconds in total
        3. close(): release the descriptor
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        deadline = time.monotonic() + DRAIN_TIMEOUT
        try:
            while True:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                # Shrinks with each recv so a trickling client cannot extend it
                self.socket.settimeout(remaining)
                if not self.socket.recv(1024):
                    break
        except OSError:
            pass  # socket.timeout is an OSError too

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
