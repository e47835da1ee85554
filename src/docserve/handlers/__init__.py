"""
=============================================================================
HANDLERS MODULE
=============================================================================

Everything between "we have a target string" and "bytes on the wire":

    resolver.py  - target → ResolvedTarget (path + STATIC/SCRIPT/NOT_FOUND)
    static.py    - stream a file with Content-Length
    script.py    - run the interpreter, relay its stdout

=============================================================================
DISPATCH
=============================================================================

    ResolvedTarget.kind
        │
        ├── STATIC     ──►  StaticFileResponder.respond(writer, path)
        ├── SCRIPT     ──►  ScriptResponder.respond(writer, path)
        └── NOT_FOUND  ──►  writer.send_not_found()

Both responders take the same (writer, path) pair and are the only code
that starts a 200 response.

=============================================================================
"""

from .resolver import DispatchKind, PathResolver, ResolvedTarget
from .static import StaticFileResponder
from .script import ScriptResponder, SubprocessSession

__all__ = [
    "DispatchKind",
    "PathResolver",
    "ResolvedTarget",
    "StaticFileResponder",
    "ScriptResponder",
    "SubprocessSession",
]
