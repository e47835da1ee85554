"""
=============================================================================
HTTP MODULE
=============================================================================

Protocol pieces of the document server:

    request.py       - target extraction from the raw request bytes
    response.py      - status line / header framing, canned 404 and 500
    status_codes.py  - the three statuses the server answers with
    mime_types.py    - extension → MIME type, static vs. script

=============================================================================
"""

from .request import Request, RequestParser, parse_request, decode_target
from .response import (
    ResponseWriter,
    ResponseAlreadyStarted,
    ResponseNotStarted,
    format_head,
    NOT_FOUND_RESPONSE,
    SERVER_ERROR_RESPONSE,
)
from .status_codes import HTTPStatus
from .mime_types import ContentClassifier, get_mime_type, DEFAULT_MIME_TYPE

__all__ = [
    # Request
    "Request",
    "RequestParser",
    "parse_request",
    "decode_target",
    # Response
    "ResponseWriter",
    "ResponseAlreadyStarted",
    "ResponseNotStarted",
    "format_head",
    "NOT_FOUND_RESPONSE",
    "SERVER_ERROR_RESPONSE",
    # Status
    "HTTPStatus",
    # Content
    "ContentClassifier",
    "get_mime_type",
    "DEFAULT_MIME_TYPE",
]
