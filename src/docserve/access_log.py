"""
=============================================================================
ACCESS LOG
=============================================================================

One structured line per handled request, on the "docserve.access" logger.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  text:                                                               │
    │    127.0.0.1 - - [18/Oct/2026:10:00:00 +0000] "GET /info.php"        │
    │      200 5321 script 12.40ms [3f2a9c1e]                               │
    │                                                                      │
    │  json:                                                               │
    │    {"connection_id": "3f2a9c1e", "client_ip": "127.0.0.1",           │
    │     "target": "/info.php", "dispatch": "script", "status_code": 200, │
    │     "bytes_sent": 5321, "duration_ms": 12.4, "malformed": false,     │
    │     "timestamp": "18/Oct/2026:10:00:00 +0000"}                       │
    └─────────────────────────────────────────────────────────────────────┘

bytes_sent counts body bytes only. For a script it is the only record of
how much output was relayed, since script responses carry no
Content-Length.

Route it separately from diagnostics if needed:

    logging.getLogger("docserve.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
import time
from dataclasses import dataclass


logger = logging.getLogger("docserve.access")


@dataclass
class RequestLog:
    """Structured log entry for one request/response exchange."""

    connection_id: str
    client_ip: str
    target: str
    dispatch: str
    status_code: int
    bytes_sent: int
    duration_ms: float
    malformed: bool
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "connection_id": self.connection_id,
            "client_ip": self.client_ip,
            "target": self.target,
            "dispatch": self.dispatch,
            "status_code": self.status_code,
            "bytes_sent": self.bytes_sent,
            "duration_ms": round(self.duration_ms, 2),
            "malformed": self.malformed,
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        """Apache-style line with the dispatch kind and connection id appended."""
        target = self.target + (" (malformed)" if self.malformed else "")
        return (
            f'{self.client_ip or "-"} - - [{self.timestamp}] '
            f'"GET {target}" {self.status_code} '
            f'{self.bytes_sent} {self.dispatch} {self.duration_ms:.2f}ms [{self.connection_id}]'
        )


class AccessLogger:
    """
    Emits RequestLog entries in the configured format.

    Client errors (404) log at INFO, server errors (500) at WARNING so a
    WARNING-level deployment still sees faults.
    """

    def __init__(self, log_format: str = "text"):
        self.log_format = log_format

    def log(self, entry: RequestLog) -> None:
        level = logging.WARNING if entry.status_code >= 500 else logging.INFO
        if not logger.isEnabledFor(level):
            return

        if self.log_format == "json":
            logger.log(level, json.dumps(entry.to_dict()))
        else:
            logger.log(level, entry.to_text())


def timestamp() -> str:
    """Current local time in common log format."""
    return time.strftime("%d/%b/%Y:%H:%M:%S %z")
