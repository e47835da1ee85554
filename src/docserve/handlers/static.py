"""
=============================================================================
STATIC FILE RESPONDER
=============================================================================

Streams a file that the resolver has already found.

=============================================================================
FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   open(path, "rb")        fails → 500                                │
    │        │                                                             │
    │   os.fstat(fd)            fails → 500                                │
    │        │                                                             │
    │   200 + Content-Type + Content-Length: st_size + Connection: close   │
    │        │                                                             │
    │   read(chunk_size) ──► writer.write(chunk) ──► ... until EOF         │
    │        │                                                             │
    │   read error / client gone → stop (body is truncated)                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

An open failure is a 500, not a 404: the resolver confirmed the file
exists, so failing to open it now (permissions, a race with a delete) is
the server's problem, not the client's.

The size comes from fstat on the OPEN descriptor, not from a stat of the
path, so a file swapped out between resolve and open still gets a
Content-Length matching what is read.

=============================================================================
AFTER THE HEAD IS SENT
=============================================================================

Once "200 OK" and the Content-Length are on the wire there is no way to
report an error. A read failure mid-file is logged and the connection is
closed early; the client sees fewer bytes than announced. The same happens
if the file shrinks while being streamed. A file that grows is cut at the
announced size.

=============================================================================
"""

import logging
import os
from pathlib import Path

from ..http.mime_types import ContentClassifier
from ..http.response import ResponseWriter
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class StaticFileResponder:
    """
    Streams files with exact Content-Length framing.

    Usage:
        static = StaticFileResponder(classifier, chunk_size=4096)
        static.respond(writer, Path("/srv/www/index.html"))
    """

    def __init__(self, classifier: ContentClassifier, chunk_size: int = 4096):
        self.classifier = classifier
        self.chunk_size = chunk_size

    def respond(self, writer: ResponseWriter, path: Path) -> None:
        """Send `path` as a 200 response, or a 500 if it cannot be read."""
        logger.info(f"Serving file: {path}")

        try:
            file = open(path, "rb")
        except OSError as e:
            logger.error(f"Failed to open {path}: {e}")
            writer.send_server_error()
            return

        with file:
            try:
                size = os.fstat(file.fileno()).st_size
            except OSError as e:
                logger.error(f"Failed to stat {path}: {e}")
                writer.send_server_error()
                return

            if not writer.start(HTTPStatus.OK, self.classifier.mime_type(path), size):
                return

            self._stream(writer, file, path, size)

    def _stream(self, writer: ResponseWriter, file, path: Path, size: int) -> None:
        sent = 0
        # Never send more than the announced Content-Length
        while sent < size:
            try:
                chunk = file.read(min(self.chunk_size, size - sent))
            except OSError as e:
                logger.error(f"Read failed for {path} after {sent} of {size} bytes: {e}")
                return

            if not chunk:
                break

            if not writer.write(chunk):
                logger.debug(f"Client went away after {sent} of {size} bytes")
                return
            sent += len(chunk)

        if sent != size:
            logger.warning(f"{path} changed while serving: sent {sent} of {size} bytes")
