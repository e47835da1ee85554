"""
=============================================================================
RESPONSE WRITER
=============================================================================

The one place that puts HTTP framing on the wire. Both responders and
every error path go through it.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n                  ← status line
    Content-Type: text/html\r\n          ← always
    Content-Length: 1234\r\n             ← only when known up front
    Connection: close\r\n                ← always, no keep-alive
    \r\n
    <body bytes...>

Exactly this order and these terminators. Nothing else: no Date, no
Server header.

Static files know their size, so they send Content-Length. Script output
is streamed as it is produced, so its length is unknown: the client reads
until the connection closes.

=============================================================================
STREAMING, NOT BUFFERING
=============================================================================

Unlike a build-then-send response object, the writer sends the head
first and the body afterwards, chunk by chunk:

    writer.start(HTTPStatus.OK, "image/png", size)
    for chunk in file:
        writer.write(chunk)

Once start() has run the status line is on the wire and cannot be taken
back. A failure after that point can only truncate the body. That is why
start() refuses to run twice, and why the canned errors refuse to follow
a started response:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   state       start()/send_*()          write()                      │
    │   ─────────   ──────────────────────    ─────────────────────        │
    │   idle        sends head → started      ResponseNotStarted           │
    │   started     ResponseAlreadyStarted    sends chunk                  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from typing import Optional

from .status_codes import HTTPStatus


class ResponseAlreadyStarted(RuntimeError):
    """A second response was attempted on the same connection."""


class ResponseNotStarted(RuntimeError):
    """Body bytes were written before the status line."""


# =============================================================================
# CANNED ERROR RESPONSES
# =============================================================================
# Constant bodies, so no Content-Length: the close marks the end.

NOT_FOUND_RESPONSE = (
    b"HTTP/1.1 404 Not Found\r\n"
    b"Content-Type: text/html\r\n"
    b"Connection: close\r\n"
    b"\r\n"
    b"<html><body>"
    b"<h1>404 Not Found</h1>"
    b"<p>The requested resource could not be found on this server.</p>"
    b"</body></html>"
)

SERVER_ERROR_RESPONSE = (
    b"HTTP/1.1 500 Internal Server Error\r\n"
    b"Content-Type: text/html\r\n"
    b"Connection: close\r\n"
    b"\r\n"
    b"<html><body>"
    b"<h1>500 Internal Server Error</h1>"
    b"<p>The server encountered an error while processing your request.</p>"
    b"</body></html>"
)


def format_head(
    status: HTTPStatus,
    content_type: str,
    content_length: Optional[int] = None,
) -> bytes:
    """
    Serialize the status line and headers.

        >>> format_head(HTTPStatus.OK, "text/plain", 5)
        b'HTTP/1.1 200 OK\\r\\nContent-Type: text/plain\\r\\nContent-Length: 5\\r\\nConnection: close\\r\\n\\r\\n'
    """
    lines = [
        f"HTTP/1.1 {status.value} {status.phrase}",
        f"Content-Type: {content_type}",
    ]
    if content_length is not None:
        lines.append(f"Content-Length: {content_length}")
    lines.append("Connection: close")
    lines.append("")
    lines.append("")
    return "\r\n".join(lines).encode("latin-1")


class ResponseWriter:
    """
    Writes exactly one response to a connection.

    The connection only needs a ``send(data: bytes) -> bool`` method that
    returns False once the peer is gone.

    Attributes:
        status:      Status of the response started, None while idle.
        bytes_sent:  Body bytes handed to the connection (head excluded).
        client_gone: True once a send failed; further writes are dropped.
    """

    def __init__(self, conn):
        self._conn = conn
        self.status: Optional[HTTPStatus] = None
        self.bytes_sent = 0
        self.client_gone = False

    @property
    def started(self) -> bool:
        """True once a status line has been sent."""
        return self.status is not None

    def start(
        self,
        status: HTTPStatus,
        content_type: str,
        content_length: Optional[int] = None,
    ) -> bool:
        """
        Send the status line and headers.

        Returns:
            False if the client is already gone.

        Raises:
            ResponseAlreadyStarted: a response was already begun.
        """
        self._claim(status)
        return self._send(format_head(status, content_type, content_length))

    def write(self, chunk: bytes) -> bool:
        """
        Send a body chunk.

        Returns:
            False if the client went away (the caller should stop).
        """
        if not self.started:
            raise ResponseNotStarted("write() before start()")
        if self.client_gone:
            return False
        if not self._send(chunk):
            return False
        self.bytes_sent += len(chunk)
        return True

    def send_not_found(self) -> bool:
        """Send the canned 404 response."""
        self._claim(HTTPStatus.NOT_FOUND)
        return self._send(NOT_FOUND_RESPONSE)

    def send_server_error(self) -> bool:
        """Send the canned 500 response."""
        self._claim(HTTPStatus.INTERNAL_SERVER_ERROR)
        return self._send(SERVER_ERROR_RESPONSE)

    def _claim(self, status: HTTPStatus) -> None:
        if self.started:
            raise ResponseAlreadyStarted(
                f"response {self.status.value} already started, refusing {status.value}"
            )
        self.status = status

    def _send(self, data: bytes) -> bool:
        if self.client_gone:
            return False
        if not self._conn.send(data):
            self.client_gone = True
            return False
        return True
