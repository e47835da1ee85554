"""
=============================================================================
PATH RESOLVER
=============================================================================

Maps a request target to a file under the document root and decides how
it will be served.

=============================================================================
RESOLUTION RULES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   target ends with "/" ?                                             │
    │        │                                                             │
    │        ├── yes ─► probe <dir>/index.html        → STATIC             │
    │        │          probe <dir>/index.<ext> ...   → SCRIPT             │
    │        │          nothing                       → NOT_FOUND          │
    │        │                                                             │
    │        └── no ──► regular file at <root><target>?                    │
    │                     ├── extension in script set → SCRIPT             │
    │                     ├── any other extension     → STATIC             │
    │                     └── missing / a directory   → NOT_FOUND          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
CONTAINMENT
=============================================================================

Joining the root and the target verbatim would let "/../../etc/passwd"
walk out of the document root. Instead the joined path is canonicalized
(".." collapsed, symlinks followed) and must still sit under the
canonical root:

    root   = Path("www").resolve()                   /srv/www
    target = "/../../etc/passwd"
    full   = (root / "../../etc/passwd").resolve()   /etc/passwd
    full.relative_to(root)                           ValueError → NOT_FOUND

A symlink inside the root that points outside it is refused the same way.
Escapes answer 404, indistinguishable from a missing file.

=============================================================================
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from ..http.mime_types import ContentClassifier


logger = logging.getLogger(__name__)


class DispatchKind(Enum):
    """How a resolved target is served."""

    STATIC = "static"
    SCRIPT = "script"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ResolvedTarget:
    """
    A canonical filesystem path plus its dispatch kind.

    `path` is None exactly when `kind` is NOT_FOUND; otherwise it is an
    existing regular file under the document root (at resolution time).
    """

    kind: DispatchKind
    path: Optional[Path] = None

    @classmethod
    def not_found(cls) -> "ResolvedTarget":
        return cls(DispatchKind.NOT_FOUND)

    @property
    def found(self) -> bool:
        return self.kind is not DispatchKind.NOT_FOUND


class PathResolver:
    """
    Resolves request targets against a fixed document root.

    Usage:
        resolver = PathResolver("./www", ContentClassifier(("php",)))
        resolver.resolve("/")            # index.html or index.php
        resolver.resolve("/info.php")    # SCRIPT
        resolver.resolve("/../secret")   # NOT_FOUND
    """

    def __init__(
        self,
        document_root: str,
        classifier: ContentClassifier,
        index_file: str = "index.html",
        script_index_files: Sequence[str] = ("index.php",),
    ):
        # Resolve once; every containment check compares against this
        self.root = Path(document_root).resolve()
        self.classifier = classifier
        self.index_files = (index_file, *script_index_files)

    @classmethod
    def from_config(cls, config, classifier: ContentClassifier) -> "PathResolver":
        return cls(
            config.document_root,
            classifier,
            script_index_files=config.script_index_files,
        )

    def resolve(self, target: str) -> ResolvedTarget:
        """
        Resolve a decoded request target.

        Never raises: anything that cannot be mapped to a contained,
        existing regular file is NOT_FOUND.
        """
        full_path = self._contain(target)
        if full_path is None:
            return ResolvedTarget.not_found()

        try:
            if target.endswith("/"):
                return self._resolve_index(full_path)

            if not full_path.is_file():
                return ResolvedTarget.not_found()
        except OSError as e:
            # e.g. ENAMETOOLONG, EACCES on a parent directory
            logger.debug(f"Cannot stat {full_path}: {e}")
            return ResolvedTarget.not_found()

        return self._classify(full_path)

    def _contain(self, target: str) -> Optional[Path]:
        """Canonical path for the target, or None if it escapes the root."""
        relative = target.lstrip("/")
        try:
            full_path = (self.root / relative).resolve()
            full_path.relative_to(self.root)
        except ValueError:
            # Outside the root, or an embedded NUL byte
            logger.warning(f"Refusing target outside document root: {target!r}")
            return None
        except (OSError, RuntimeError) as e:
            # RuntimeError: symlink loop on older Pythons
            logger.debug(f"Cannot resolve {target!r}: {e}")
            return None
        return full_path

    def _resolve_index(self, directory: Path) -> ResolvedTarget:
        for name in self.index_files:
            # An index file may itself be a symlink
            try:
                candidate = (directory / name).resolve()
            except (OSError, RuntimeError) as e:
                # RuntimeError: symlink loop on older Pythons
                logger.debug(f"Cannot resolve index {directory / name}: {e}")
                continue
            if candidate.is_file() and self._inside(candidate):
                return self._classify(candidate)
        return ResolvedTarget.not_found()

    def _inside(self, path: Path) -> bool:
        try:
            path.relative_to(self.root)
        except ValueError:
            logger.warning(f"Refusing index file outside document root: {path}")
            return False
        return True

    def _classify(self, path: Path) -> ResolvedTarget:
        if self.classifier.is_script(path):
            return ResolvedTarget(DispatchKind.SCRIPT, path)
        return ResolvedTarget(DispatchKind.STATIC, path)
