"""
=============================================================================
CORE MODULE
=============================================================================

Transport layer of the document server:

    socket_server.py - listening socket and the sequential accept loop
    connection.py    - one accepted client: single read, send, close

Nothing in here knows about HTTP beyond "read some bytes, write some
bytes, close".

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState

__all__ = ["SocketServer", "Connection", "ConnectionState"]
