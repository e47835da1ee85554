"""
=============================================================================
REQUEST TARGET PARSER
=============================================================================

Extracts the request target from the first bytes read off a connection.

This is intentionally NOT a full HTTP/1.1 parser. Only GET is served and
every header is ignored, so the only thing worth pulling out of the
request is the target between "GET " and the next space:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /docs/my%20page.html HTTP/1.1\r\n                             │
    │    ────┬──────────────────── ─────────                               │
    │        │                      ignored                                │
    │        ▼                                                             │
    │    "/docs/my%20page.html"  ──decode──►  "/docs/my page.html"         │
    │                                                                      │
    │    Host: example.com\r\n     ignored                                 │
    │    \r\n                                                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TOLERANT BY DEFAULT
=============================================================================

Anything unparsable is served as "/" rather than rejected:

    b"POST /form HTTP/1.1..."   no "GET " token      →  "/"
    b"GET /no-terminator"       no space after target →  "/"
    b"GET  HTTP/1.1"            empty target          →  "/"

The Request carries a `malformed` flag so the access log can tell these
apart from a genuine request for "/". This is a convenience, not a
security boundary: containment is enforced by the path resolver.

=============================================================================
PERCENT-DECODING
=============================================================================

Only "%20" is decoded (to a space). Every other escape, "%2F" included,
reaches the filesystem lookup unchanged. The resolver relies on this: a
literal "%2F" can never turn into a path separator.

=============================================================================
"""

from dataclasses import dataclass


GET_TOKEN = b"GET "
DEFAULT_TARGET = "/"


def decode_target(target: str) -> str:
    """
    Decode the only escape the server understands.

        >>> decode_target("/my%20file.html")
        '/my file.html'
        >>> decode_target("/a%2Fb")
        '/a%2Fb'
    """
    # TODO: full percent-decoding via urllib.parse.unquote
    return target.replace("%20", " ")


@dataclass(frozen=True)
class Request:
    """
    A received request, reduced to what the server acts on.

    Attributes:
        target:          Decoded request target, always starts the lookup.
        raw:             The bytes read from the connection.
        client_address:  (ip, port) of the client, for logging.
        malformed:       True when the target fell back to "/".
    """

    target: str
    raw: bytes = b""
    client_address: tuple = ("", 0)
    malformed: bool = False

    @property
    def request_line(self) -> str:
        """First line of the raw request, for logging."""
        line = self.raw.split(b"\r\n", 1)[0]
        return line.decode("latin-1")


class RequestParser:
    """
    Parses the target out of a raw request buffer.

    ==========================================================================
    ALGORITHM
    ==========================================================================

        1. find b"GET "                       missing   → "/"
        2. find the next b" " after it        missing   → "/"
        3. slice the target                   empty     → "/"
        4. truncate to max_path_length - 1 bytes
        5. decode bytes (surrogateescape keeps non-UTF-8 names intact)
        6. decode "%20"

    Truncation happens before decoding, so the byte limit applies to what
    the client actually sent.

    ==========================================================================
    """

    def __init__(self, max_path_length: int = 256):
        self.max_path_length = max_path_length

    def parse(self, data: bytes, client_address: tuple = ("", 0)) -> Request:
        """
        Parse raw request bytes into a Request.

        Never raises for bad input; see the module docstring for the
        fallbacks.
        """
        start = data.find(GET_TOKEN)
        if start == -1:
            return self._fallback(data, client_address)

        start += len(GET_TOKEN)
        end = data.find(b" ", start)
        if end == -1:
            return self._fallback(data, client_address)

        raw_target = data[start:end]
        if not raw_target:
            return self._fallback(data, client_address)

        # Truncate to the configured maximum (one byte short, like a
        # NUL-terminated buffer of max_path_length)
        raw_target = raw_target[:self.max_path_length - 1]

        target = raw_target.decode("utf-8", errors="surrogateescape")
        return Request(
            target=decode_target(target),
            raw=data,
            client_address=client_address,
        )

    def _fallback(self, data: bytes, client_address: tuple) -> Request:
        return Request(
            target=DEFAULT_TARGET,
            raw=data,
            client_address=client_address,
            malformed=True,
        )


def parse_request(
    data: bytes,
    client_address: tuple = ("", 0),
    max_path_length: int = 256,
) -> Request:
    """
    Convenience function to parse a request with a throwaway parser.

    Use RequestParser directly to parse many requests with one setting.
    """
    return RequestParser(max_path_length=max_path_length).parse(data, client_address)
