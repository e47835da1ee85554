"""
Unit tests for the connection wrapper.
"""

import socket
import threading
import time

import pytest

from docserve.core.connection import DRAIN_TIMEOUT, Connection, ConnectionState


@pytest.fixture
def pair():
    client, server_side = socket.socketpair()
    yield client, server_side
    client.close()
    server_side.close()


class TestConnection:
    """Tests for Connection."""

    def test_read_request_single_recv(self, pair):
        """Test the request is read with one bounded recv()."""
        client, server_side = pair
        conn = Connection(socket=server_side, buffer_size=16, timeout=1.0)
        client.sendall(b"GET / HTTP/1.1\r\nHost: example\r\n\r\n")

        data = conn.read_request()

        assert data == b"GET / HTTP/1.1\r\n"
        assert conn.state == ConnectionState.PROCESSING

    def test_read_request_peer_closed(self, pair):
        """Test an immediate close yields None."""
        client, server_side = pair
        conn = Connection(socket=server_side, timeout=1.0)
        client.shutdown(socket.SHUT_WR)

        assert conn.read_request() is None

    def test_read_request_timeout(self, pair):
        """Test a silent client yields None after the timeout."""
        _, server_side = pair
        conn = Connection(socket=server_side, timeout=0.2)

        assert conn.read_request() is None

    def test_send_counts_bytes(self, pair):
        """Test bytes_sent bookkeeping."""
        client, server_side = pair
        conn = Connection(socket=server_side, timeout=1.0)

        assert conn.send(b"hello")
        assert conn.bytes_sent == 5
        assert client.recv(5) == b"hello"

    def test_send_after_peer_gone(self, pair):
        """Test a send to a closed peer returns False."""
        client, server_side = pair
        conn = Connection(socket=server_side, timeout=1.0)
        client.close()

        # The first send may still be buffered; keep going until it fails
        results = [conn.send(b"x" * 65536) for _ in range(20)]

        assert results[-1] is False

    def test_close_sends_eof(self, pair):
        """Test closing delivers EOF and is idempotent."""
        client, server_side = pair
        conn = Connection(socket=server_side, timeout=1.0)
        client.shutdown(socket.SHUT_WR)

        conn.close()
        conn.close()

        assert conn.state == ConnectionState.CLOSED
        assert client.recv(10) == b""

    def test_context_manager(self, pair):
        """Test the connection is closed on exit."""
        client, server_side = pair
        client.shutdown(socket.SHUT_WR)

        with Connection(socket=server_side, timeout=1.0) as conn:
            pass

        assert conn.state == ConnectionState.CLOSED

    def test_close_drain_is_bounded(self, pair):
        """Test a client trickling bytes cannot hold close() open."""
        client, server_side = pair
        conn = Connection(socket=server_side, timeout=1.0)
        stop = threading.Event()

        def trickle():
            while not stop.is_set():
                try:
                    client.send(b"x")
                except OSError:
                    return
                time.sleep(0.1)

        sender = threading.Thread(target=trickle, daemon=True)
        sender.start()
        try:
            started = time.monotonic()
            conn.close()
            elapsed = time.monotonic() - started
        finally:
            stop.set()
            sender.join(2.0)

        assert conn.state == ConnectionState.CLOSED
        assert elapsed < DRAIN_TIMEOUT + 0.5
