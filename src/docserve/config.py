"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, immutable configuration for the document server.

=============================================================================
WHY A FROZEN CONFIG?
=============================================================================

Everything the server needs to know is fixed before the first connection
is accepted: where the documents live, which interpreter runs scripts,
which extensions count as scripts. Nothing changes while serving.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION FLOW                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Environment (DOCSERVE_*)                                           │
    │          │                                                           │
    │          ▼                                                           │
    │   ServerConfig.from_env()  ──►  CLI overrides (dataclasses.replace)  │
    │                                        │                             │
    │                                        ▼                             │
    │                                  validate()  (fail fast)             │
    │                                        │                             │
    │          ┌─────────────┬───────────────┼──────────────┐              │
    │          ▼             ▼               ▼              ▼              │
    │     SocketServer  RequestParser   PathResolver   ScriptResponder     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A frozen dataclass is passed explicitly into every component. No module
reads global state, so two servers with different roots can live in the
same process (the tests rely on this).

=============================================================================
ENVIRONMENT VARIABLES
=============================================================================

    DOCSERVE_HOST               Bind address (default: 0.0.0.0)
    DOCSERVE_PORT               Listening port (default: 8080)
    DOCSERVE_BACKLOG            Listen backlog (default: 10)
    DOCSERVE_BUFFER_SIZE        Request read / relay chunk size (default: 4096)
    DOCSERVE_TIMEOUT            Per-connection socket timeout (default: 30)
    DOCSERVE_ROOT               Document root (default: ./www)
    DOCSERVE_INTERPRETER        Script interpreter (default: /usr/bin/php)
    DOCSERVE_SCRIPT_EXTENSIONS  Comma separated list (default: php)
    DOCSERVE_MAX_PATH_LENGTH    Request target limit (default: 256)
    DOCSERVE_SCRIPT_TIMEOUT     Kill scripts after N seconds (default: unset)
    DOCSERVE_LOG_LEVEL          DEBUG, INFO, WARNING, ERROR (default: INFO)
    DOCSERVE_LOG_FORMAT         text or json (default: text)

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


ENV_PREFIX = "DOCSERVE_"

LOG_FORMATS = ("text", "json")


def normalize_extensions(extensions) -> Tuple[str, ...]:
    """
    Normalize script extensions: lower case, no leading dot, no duplicates.

    Order is preserved because index fallback probes ``index.<ext>`` in
    the configured order.

        >>> normalize_extensions([".PHP", "php", "phtml"])
        ('php', 'phtml')
    """
    seen = []
    for ext in extensions:
        ext = ext.strip().lstrip(".").lower()
        if ext and ext not in seen:
            seen.append(ext)
    return tuple(seen)


@dataclass(frozen=True)
class ServerConfig:
    """
    Configuration for the document server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    REQUEST SETTINGS
    - max_path_length

    CONTENT SETTINGS
    - document_root, interpreter, script_extensions, script_timeout,
      mime_types

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. All interfaces by default."""

    port: int = 8080
    """Port to listen on. 0 asks the OS for a free port (tests)."""

    backlog: int = 10
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 4096
    """
    Size of the single request read, and of every chunk relayed from a
    file or from the interpreter pipe.
    """

    timeout: Optional[float] = 30.0
    """
    Socket timeout for each client connection, in seconds.
    None = block forever on a silent client.
    """

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_path_length: int = 256
    """Request targets are truncated to max_path_length - 1 bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "./www"
    """Directory every served file must live under."""

    interpreter: str = "/usr/bin/php"
    """Executable invoked as ``<interpreter> <script-path>``."""

    script_extensions: Tuple[str, ...] = ("php",)
    """
    Extensions routed to the interpreter instead of being streamed.
    Matched case-insensitively. The first one also names the sample
    script seeded into a fresh document root.
    """

    script_timeout: Optional[float] = None
    """
    Kill the interpreter after this many seconds. Unset means a script may
    run for as long as it likes and the relay loop waits for it.
    """

    mime_types: Dict[str, str] = field(default_factory=dict)
    """Extra extension → MIME type entries, e.g. {"md": "text/markdown"}."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' for humans, 'json' for log shippers."""

    def __post_init__(self):
        # frozen: normalize through object.__setattr__
        object.__setattr__(
            self, "script_extensions", normalize_extensions(self.script_extensions)
        )
        object.__setattr__(
            self,
            "mime_types",
            {k.strip().lstrip(".").lower(): v for k, v in dict(self.mime_types).items()},
        )

    @property
    def script_index_files(self) -> Tuple[str, ...]:
        """``index.<ext>`` for every script extension, in probe order."""
        return tuple(f"index.{ext}" for ext in self.script_extensions)

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from DOCSERVE_* environment variables.

        Unset variables fall back to the dataclass defaults.

        Usage:
            DOCSERVE_PORT=3000 DOCSERVE_ROOT=/srv/www python -m docserve
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        def get(name: str, default):
            return env.get(ENV_PREFIX + name, default)

        def optional_float(name: str, default: Optional[float]) -> Optional[float]:
            value = get(name, None)
            if value is None or value == "":
                return default
            return float(value)

        extensions = get("SCRIPT_EXTENSIONS", None)

        return cls(
            host=get("HOST", defaults.host),
            port=int(get("PORT", defaults.port)),
            backlog=int(get("BACKLOG", defaults.backlog)),
            buffer_size=int(get("BUFFER_SIZE", defaults.buffer_size)),
            timeout=optional_float("TIMEOUT", defaults.timeout),
            max_path_length=int(get("MAX_PATH_LENGTH", defaults.max_path_length)),
            document_root=get("ROOT", defaults.document_root),
            interpreter=get("INTERPRETER", defaults.interpreter),
            script_extensions=(
                tuple(extensions.split(",")) if extensions
                else defaults.script_extensions
            ),
            script_timeout=optional_float("SCRIPT_TIMEOUT", defaults.script_timeout),
            log_level=get("LOG_LEVEL", defaults.log_level),
            log_format=get("LOG_FORMAT", defaults.log_format),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails before the socket is
        bound rather than on the first request.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.buffer_size < 512:
            raise ValueError("buffer_size must be >= 512")

        if self.max_path_length < 2:
            raise ValueError("max_path_length must be >= 2")

        if not self.script_extensions:
            raise ValueError("at least one script extension is required")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.script_timeout is not None and self.script_timeout <= 0:
            raise ValueError("script_timeout must be > 0")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(LOG_FORMATS)}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Immutable configuration with dataclass(frozen=True)
# 2. Environment variable support (DOCSERVE_*)
# 3. Validation at startup (fail-fast)
# 4. Extensions normalized once, so lookups never re-normalize
# =============================================================================
