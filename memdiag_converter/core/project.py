"""Project membership lookup for stack-frame paths.

WHY: The localizer has to decide, frame by frame, whether a path the
diagnostic tool printed belongs to the analyzed project. Tools print
absolute build paths, paths relative to the build directory, or bare
library names, so the lookup must normalize before it compares.

HOW: ProjectOracle is the capability the localizer depends on — a single
lookup() method. ProjectFileIndex implements it over a set of files: it
walks the project root once (or takes an explicit file list, which is
how tests and in-memory callers use it) and answers lookups from that
set, returning the canonical project-relative POSIX path.

RULES:
- lookup() returns None for paths outside the root or not indexed
- Relative paths are resolved against the project root
- Canonical form: POSIX path relative to the root ("src/main.c")
- The index is built once and read-only afterwards (safe across threads)
- Hidden directories (".git", ".venv", ...) are not indexed
"""

from __future__ import annotations

import logging
import os
from pathlib import Path, PurePosixPath
from typing import FrozenSet, Iterable, Optional, Protocol

logger = logging.getLogger(__name__)


class ProjectOracle(Protocol):
    """Maps a raw path to its canonical in-project path, or None."""

    def lookup(self, path: str) -> Optional[str]:
        ...


def _walk_files(root: Path) -> Iterable[Path]:
    for directory, dir_names, file_names in os.walk(root):
        dir_names[:] = [d for d in dir_names if not d.startswith(".")]
        for name in file_names:
            yield Path(directory) / name


class ProjectFileIndex:
    """File-set backed ProjectOracle.

    Args:
        root: Project root directory.
        files: Files of the project, absolute or relative to ``root``.
               None means walk ``root`` and index every regular file.
    """

    def __init__(self, root: str | os.PathLike, files: Optional[Iterable[str | os.PathLike]] = None) -> None:
        self.root = Path(os.path.abspath(root))
        if files is None:
            paths = _walk_files(self.root)
        else:
            paths = (self.root / Path(f) for f in files)
        self._files: FrozenSet[str] = frozenset(
            c for c in (self._canonical(p) for p in paths) if c is not None
        )
        logger.debug("Indexed %d project files under %s", len(self._files), self.root)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.lookup(path) is not None

    @property
    def files(self) -> FrozenSet[str]:
        return self._files

    def _canonical(self, path: Path) -> Optional[str]:
        absolute = Path(os.path.normpath(self.root / path))
        try:
            relative = absolute.relative_to(self.root)
        except ValueError:
            return None
        return PurePosixPath(*relative.parts).as_posix()

    def lookup(self, path: str) -> Optional[str]:
        """Return the canonical project path for ``path``, or None.

        Backslash-separated paths (Windows tool output) are accepted.
        """
        if not path:
            return None
        candidate = Path(path.replace("\\", "/")) if os.sep == "/" else Path(path)
        canonical = self._canonical(candidate)
        if canonical is None or canonical not in self._files:
            return None
        return canonical
