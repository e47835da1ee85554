"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The server only ever answers with three statuses:

    ┌────────┬────────────────────────┬──────────────────────────────────┐
    │  Code  │  Phrase                │  When                            │
    ├────────┼────────────────────────┼──────────────────────────────────┤
    │  200   │  OK                    │  File streamed / script relayed  │
    │  404   │  Not Found             │  Nothing servable at the target  │
    │  500   │  Internal Server Error │  open/stat/pipe/spawn failure    │
    └────────┴────────────────────────┴──────────────────────────────────┘

A malformed request is NOT a 400 here: it is served as a request for "/".

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    IntEnum, so members compare and format as integers:

        >>> HTTPStatus.OK == 200
        True
        >>> f"{HTTPStatus.NOT_FOUND.value} {HTTPStatus.NOT_FOUND.phrase}"
        '404 Not Found'
    """

    OK = 200
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}
