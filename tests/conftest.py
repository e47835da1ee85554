"""
pytest configuration and fixtures.
"""

import socket
import sys
import threading
from pathlib import Path
from typing import Dict, Generator, Tuple

import pytest

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from docserve import HTTPServer, ServerConfig
from docserve.core import Connection


# Scripts in tests are Python files run by the current interpreter, so the
# suite does not depend on PHP being installed.
SCRIPT_EXTENSION = "py"


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """An empty document root."""
    root = tmp_path / "www"
    root.mkdir()
    return root


@pytest.fixture
def config(docroot: Path) -> ServerConfig:
    """Test server configuration serving `docroot`."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        document_root=str(docroot),
        interpreter=sys.executable,
        script_extensions=(SCRIPT_EXTENSION,),
        timeout=5.0,
        log_level="WARNING",
    )


@pytest.fixture
def server(config: ServerConfig) -> HTTPServer:
    """A server that is never started; drive it with `exchange`."""
    return HTTPServer(config)


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


# =============================================================================
# EXCHANGE HELPERS
# =============================================================================

def exchange(server: HTTPServer, request: bytes, timeout: float = 10.0) -> bytes:
    """
    Run one request through server.handle_connection() over a socketpair.

    The handler runs in a thread so large responses cannot fill the
    socket buffer and block it while nobody is reading.
    """
    client, server_side = socket.socketpair()
    conn = Connection(socket=server_side, address=("127.0.0.1", 0), timeout=5.0)

    handler = threading.Thread(target=server.handle_connection, args=(conn,), daemon=True)
    try:
        client.settimeout(timeout)
        client.sendall(request)
        client.shutdown(socket.SHUT_WR)
        handler.start()
        response = read_all(client)
    finally:
        client.close()
    handler.join(timeout)
    assert not handler.is_alive(), "handle_connection did not return"
    return response


def read_all(sock: socket.socket) -> bytes:
    """Read until the peer closes."""
    chunks = []
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def get(server: HTTPServer, target: str) -> bytes:
    return exchange(server, f"GET {target} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode())


def split_response(data: bytes) -> Tuple[str, Dict[str, str], bytes]:
    """Split raw response bytes into (status line, headers, body)."""
    head, sep, body = data.partition(b"\r\n\r\n")
    assert sep, f"no end of headers in {data[:200]!r}"

    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


# =============================================================================
# LIVE SERVER
# =============================================================================

class LiveServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: HTTPServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"setup_logging": False},
            daemon=True
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes) -> bytes:
        with socket.create_connection(("127.0.0.1", self.port), timeout=5.0) as s:
            s.sendall(raw)
            return read_all(s)


@pytest.fixture
def live_server(config: ServerConfig) -> Generator[LiveServer, None, None]:
    """A running server on an OS-assigned port."""
    live = LiveServer(HTTPServer(config))
    live.start()

    yield live

    live.stop()
