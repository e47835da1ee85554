"""
=============================================================================
DOCUMENT SERVER
=============================================================================

Ties the components together and runs the per-connection pipeline.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer.accept()                                              │
    │        │                                                             │
    │        ▼                                                             │
    │   handle_connection(conn)                                            │
    │        │                                                             │
    │        ├──► conn.read_request()        one recv(), None → close      │
    │        │                                                             │
    │        ├──► RequestParser.parse()      target, "/" if malformed      │
    │        │                                                             │
    │        ├──► PathResolver.resolve()     canonical path + kind         │
    │        │                                                             │
    │        ├──► dispatch                                                 │
    │        │      NOT_FOUND ──► canned 404                               │
    │        │      STATIC    ──► StaticFileResponder (Content-Length)     │
    │        │      SCRIPT    ──► ScriptResponder (stream until EOF)       │
    │        │                                                             │
    │        ├──► access log entry                                         │
    │        │                                                             │
    │        └──► conn.close()               always                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
ERROR CONTAINMENT
=============================================================================

Nothing escapes handle_connection. Responders turn their own faults into
a 500 (before the head is sent) or a truncated body (after). Anything
unexpected is caught here, logged with a traceback, and answered with a
500 if no response has started yet. Either way the connection is closed
and the accept loop moves on to the next client.

=============================================================================
"""

import logging
import time
from typing import Optional

from .access_log import AccessLogger, RequestLog, timestamp
from .config import ServerConfig
from .core import SocketServer, Connection
from .handlers import (
    DispatchKind,
    PathResolver,
    ResolvedTarget,
    ScriptResponder,
    StaticFileResponder,
)
from .http import ContentClassifier, Request, RequestParser, ResponseWriter


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    The document server.

    Usage:
        server = HTTPServer(ServerConfig(document_root="./www"))
        server.run()   # blocks until Ctrl+C / SIGTERM

    handle_connection() can also be driven directly with any connected
    socket, which is how the tests exercise the pipeline without the
    accept loop.
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()  # Fail-fast on invalid config

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_path_length=self.config.max_path_length)

        # Shared read-only by every connection
        self._classifier = ContentClassifier.from_config(self.config)
        self._resolver = PathResolver.from_config(self.config, self._classifier)
        self._static = StaticFileResponder(self._classifier, chunk_size=self.config.buffer_size)
        self._scripts = ScriptResponder.from_config(self.config)

        self._access_log = AccessLogger(log_format=self.config.log_format)

    @property
    def address(self):
        """Bound (host, port); the real port once listening on port 0."""
        return self._socket_server.address

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, setup_logging: bool = True):
        """
        Serve until shutdown() or SIGINT/SIGTERM.

        Args:
            setup_logging: configure the root logger from the config.
                           Embedding applications pass False.
        """
        if setup_logging:
            self._setup_logging()

        logger.info(f"Serving files from {self._resolver.root}")
        logger.info(f"Scripts (.{', .'.join(self.config.script_extensions)}) run with {self.config.interpreter}")
        if self.config.port:
            base_url = f"http://localhost:{self.config.port}"
            logger.info(f"Try {base_url}/ or {base_url}/info.{self.config.script_extensions[0]}")

        try:
            self._socket_server.start(self.handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            logger.info("Server stopped")

    def shutdown(self):
        """Stop after the connection currently being handled, if any."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("docserve").setLevel(level)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def handle_connection(self, conn: Connection) -> None:
        """
        Handle one connection: read, resolve, respond, close.

        Never raises.
        """
        started = time.monotonic()
        writer = ResponseWriter(conn)
        request: Optional[Request] = None
        target = ResolvedTarget.not_found()

        with conn:  # Closed on every path
            try:
                raw = conn.read_request()
                if raw is None:
                    logger.debug(f"[{conn.id}] No request received")
                    return

                request = self._parser.parse(raw, conn.address)
                logger.debug(f"[{conn.id}] {request.request_line!r} -> {request.target!r}")

                target = self._resolver.resolve(request.target)
                self._dispatch(writer, target)

            except Exception:
                logger.exception(f"[{conn.id}] Error handling request")
                if not writer.started:
                    writer.send_server_error()

            finally:
                if request is not None:
                    self._log_access(conn, request, target, writer, started)

    def _dispatch(self, writer: ResponseWriter, target: ResolvedTarget) -> None:
        if target.kind is DispatchKind.STATIC:
            self._static.respond(writer, target.path)
        elif target.kind is DispatchKind.SCRIPT:
            self._scripts.respond(writer, target.path)
        else:
            writer.send_not_found()

    def _log_access(
        self,
        conn: Connection,
        request: Request,
        target: ResolvedTarget,
        writer: ResponseWriter,
        started: float,
    ) -> None:
        entry = RequestLog(
            connection_id=conn.id,
            client_ip=conn.client_ip,
            target=request.target,
            dispatch=target.kind.value,
            status_code=int(writer.status) if writer.started else 0,
            bytes_sent=writer.bytes_sent,
            duration_ms=(time.monotonic() - started) * 1000,
            malformed=request.malformed,
            timestamp=timestamp(),
        )
        self._access_log.log(entry)


def create_app(config: Optional[ServerConfig] = None) -> HTTPServer:
    """Factory for an HTTPServer instance."""
    return HTTPServer(config)
