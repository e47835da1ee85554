"""
=============================================================================
DOCSERVE CLI ENTRY POINT
=============================================================================

    # Defaults: 0.0.0.0:8080, ./www, /usr/bin/php
    python -m docserve

    # Custom port and document root
    python -m docserve --port 3000 --root /srv/www

    # Run .py files with Python instead of .php with PHP
    python -m docserve --interpreter /usr/bin/python3 --script-ext py

    # Extra MIME types, kill scripts after 10 seconds
    python -m docserve --mime md=text/markdown --script-timeout 10

=============================================================================
CONFIGURATION PRECEDENCE
=============================================================================

    1. Command-line flags          (highest)
    2. DOCSERVE_* environment variables
    3. ServerConfig defaults       (lowest)

Flags left unset do not override the environment.

=============================================================================
"""

import argparse
import dataclasses
import sys

from . import __version__
from .bootstrap import check_interpreter, prepare_document_root
from .config import LOG_FORMATS, ServerConfig
from .server import HTTPServer


def parse_mime(value: str):
    """argparse type for EXT=TYPE pairs."""
    ext, sep, mime = value.partition("=")
    if not sep or not ext.strip() or not mime.strip():
        raise argparse.ArgumentTypeError(f"expected EXT=TYPE, got {value!r}")
    return ext.strip(), mime.strip()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docserve",
        description="Serve a document root over HTTP, running scripts through an interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m docserve                                  # Run with defaults
  python -m docserve --port 3000 --root ./public      # Custom port and root
  python -m docserve -i /usr/bin/python3 --script-ext py
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", help="Address to bind (default: 0.0.0.0)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument("--backlog", type=int, help="Listen backlog (default: 10)")
    parser.add_argument(
        "--buffer-size", type=int,
        help="Request read and relay chunk size in bytes (default: 4096)"
    )
    parser.add_argument(
        "--timeout", type=float,
        help="Per-connection socket timeout in seconds (default: 30)"
    )

    # ─────────────────────────────────────────────────────────────────────
    # CONTENT ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--root", "-r", help="Document root (default: ./www)")
    parser.add_argument(
        "--interpreter", "-i",
        help="Script interpreter executable (default: /usr/bin/php)"
    )
    parser.add_argument(
        "--script-ext", action="append", dest="script_extensions", metavar="EXT",
        help="Extension run through the interpreter, repeatable (default: php)"
    )
    parser.add_argument(
        "--mime", action="append", type=parse_mime, metavar="EXT=TYPE",
        help="Extra MIME type mapping, repeatable"
    )
    parser.add_argument(
        "--max-path-length", type=int,
        help="Longest request target accepted before truncation (default: 256)"
    )
    parser.add_argument(
        "--script-timeout", type=float,
        help="Kill scripts running longer than this many seconds (default: no limit)"
    )
    parser.add_argument(
        "--no-seed", action="store_true",
        help="Do not create a missing document root with sample files"
    )

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument("--log-format", choices=LOG_FORMATS, help="Access log format (default: text)")
    parser.add_argument("--version", "-v", action="version", version=f"docserve {__version__}")

    return parser


def config_from_args(args: argparse.Namespace, base: ServerConfig) -> ServerConfig:
    """Apply the flags that were given on top of `base`."""
    overrides = {
        "host": args.host,
        "port": args.port,
        "backlog": args.backlog,
        "buffer_size": args.buffer_size,
        "timeout": args.timeout,
        "document_root": args.root,
        "interpreter": args.interpreter,
        "script_extensions": tuple(args.script_extensions) if args.script_extensions else None,
        "max_path_length": args.max_path_length,
        "script_timeout": args.script_timeout,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    if args.mime:
        overrides["mime_types"] = {**base.mime_types, **dict(args.mime)}

    return dataclasses.replace(
        base, **{name: value for name, value in overrides.items() if value is not None}
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = config_from_args(args, ServerConfig.from_env())
        server = HTTPServer(config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    # Logging first so bootstrap messages are visible
    server._setup_logging()

    if not args.no_seed:
        prepare_document_root(config.document_root, config.script_extensions[0])
    check_interpreter(config.interpreter)

    try:
        server.run(setup_logging=False)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
