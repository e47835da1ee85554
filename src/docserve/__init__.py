"""
=============================================================================
DOCSERVE - Document Root HTTP Server with Script Execution
=============================================================================

A small origin server that answers GET requests in one of two ways:

    1. STATIC: stream a file from the document root
    2. SCRIPT: run an external interpreter (PHP by default) on the file
               and relay whatever it prints

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    DOCSERVE ARCHITECTURE                             │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   accept ──► read ──► parse target ──► resolve ──► respond ──► close │
    │                                            │                         │
    │                            ┌───────────────┼──────────────┐          │
    │                            ▼               ▼              ▼          │
    │                         STATIC          SCRIPT        NOT_FOUND      │
    │                       file bytes    interpreter         404          │
    │                     + Content-Length  stdout pipe                    │
    │                                                                      │
    │   One connection at a time. One request per connection.             │
    │   Every response ends with "Connection: close".                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    docserve/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m docserve)
    ├── server.py            # HTTPServer: per-connection pipeline
    ├── config.py            # ServerConfig frozen dataclass
    ├── bootstrap.py         # Seed a fresh document root, check interpreter
    ├── access_log.py        # Structured access log
    ├── core/                # Transport
    │   ├── socket_server.py # Listening socket, sequential accept loop
    │   └── connection.py    # One client: single read, send, close
    ├── http/                # Protocol
    │   ├── request.py       # Request target extraction
    │   ├── response.py      # Response framing, canned 404 / 500
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # Extension → MIME type, script detection
    └── handlers/            # Dispatch
        ├── resolver.py      # Target → path under the root
        ├── static.py        # File streaming
        └── script.py        # Interpreter subprocess + pipe relay

=============================================================================
QUICK START
=============================================================================

    from docserve import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(
        port=8080,
        document_root="./www",
        interpreter="/usr/bin/php",
    ))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer
from .config import ServerConfig

__all__ = ["HTTPServer", "ServerConfig", "__version__"]
