"""
=============================================================================
CONTENT CLASSIFICATION
=============================================================================

Maps a resolved file's extension to two things:

    1. a MIME type for the Content-Type header
    2. a dispatch decision: stream the bytes, or run them through the
       interpreter

    ┌────────────────────────────────────────────────────────────────────┐
    │                    CLASSIFICATION                                  │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   www/css/site.css   ──►  ".css"  ──►  text/css        STATIC       │
    │   www/logo.PNG       ──►  ".png"  ──►  image/png       STATIC       │
    │   www/info.php       ──►  ".php"  ──►  text/html       SCRIPT       │
    │   www/blob.bin       ──►  ".bin"  ──►  octet-stream    STATIC       │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

The table is configuration data, not protocol: new extensions can be added
(ServerConfig.mime_types) without changing anything already served.

Values are emitted exactly as listed. No "; charset=..." parameter is
appended, the server has no idea what encoding a file on disk uses.

=============================================================================
"""

from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union


# =============================================================================
# MIME TYPE DATABASE
# =============================================================================
# Keys are lower-case extensions including the dot, as Path.suffix returns.

MIME_TYPES: Mapping[str, str] = {
    # Documents
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".txt": "text/plain",
    ".json": "application/json",
    ".xml": "application/xml",
    ".pdf": "application/pdf",

    # Images
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Fonts / media / archives
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".mp4": "video/mp4",
    ".zip": "application/zip",
    ".wasm": "application/wasm",

    # Script output is HTML
    ".php": "text/html",
}

# Default MIME type for unknown extensions
DEFAULT_MIME_TYPE = "application/octet-stream"

# Content-Type of everything the interpreter writes
SCRIPT_OUTPUT_TYPE = "text/html"


def _dotted(ext: str) -> str:
    return "." + ext.strip().lstrip(".").lower()


def get_mime_type(
    path: Union[str, Path],
    default: Optional[str] = None,
    table: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Get the MIME type for a file based on its extension.

    `table` replaces the built-in MIME_TYPES, e.g. a copy extended with
    configured entries.

        >>> get_mime_type("style.css")
        'text/css'
        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    extension = Path(path).suffix.lower()
    return (MIME_TYPES if table is None else table).get(extension, default or DEFAULT_MIME_TYPE)


class ContentClassifier:
    """
    Extension-based MIME lookup and static/script decision.

    Built once from ServerConfig and shared read-only by the resolver and
    both responders.

    Usage:
        classifier = ContentClassifier(script_extensions=("php",))
        classifier.mime_type("www/a.css")   # 'text/css'
        classifier.is_script("www/A.PHP")   # True
    """

    def __init__(
        self,
        script_extensions: Iterable[str] = ("php",),
        extra_types: Optional[Mapping[str, str]] = None,
        script_output_type: str = SCRIPT_OUTPUT_TYPE,
    ):
        self.script_suffixes = frozenset(_dotted(ext) for ext in script_extensions)
        self.script_output_type = script_output_type

        table: Dict[str, str] = dict(MIME_TYPES)
        for ext, mime in (extra_types or {}).items():
            table[_dotted(ext)] = mime
        self._table = table

    @classmethod
    def from_config(cls, config) -> "ContentClassifier":
        return cls(
            script_extensions=config.script_extensions,
            extra_types=config.mime_types,
        )

    def mime_type(self, path: Union[str, Path]) -> str:
        """MIME type for the path's extension, octet-stream if unknown."""
        return get_mime_type(path, table=self._table)

    def is_script(self, path: Union[str, Path]) -> bool:
        """True when the extension routes to the interpreter (any case)."""
        return Path(path).suffix.lower() in self.script_suffixes
