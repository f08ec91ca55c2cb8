"""Ignore policy for file sync: .gitignore rules plus static denylists."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from pathlib import Path, PurePosixPath

import pathspec

# Directories the walker never descends into.
SKIPPED_DIRS = frozenset({".git", "node_modules"})


class IgnorePolicy:
    """Decides whether a project-relative path is indexed.

    Args:
        root: Project working tree; its ``.gitignore`` (if any) is loaded.
        ignored_extensions: Lower-case extensions (with the dot) to skip.
        ignored_filenames: Exact file names to skip.
    """

    def __init__(
        self,
        root: Path,
        ignored_extensions: Iterable[str] = (),
        ignored_filenames: Iterable[str] = (),
    ) -> None:
        self.root = Path(root)
        self._extensions = {e.lower() for e in ignored_extensions}
        self._filenames = set(ignored_filenames)

        patterns: list[str] = []
        gitignore = self.root / ".gitignore"
        if gitignore.is_file():
            patterns = gitignore.read_text(encoding="utf-8", errors="replace").splitlines()
        self._spec = pathspec.PathSpec.from_lines("gitwildmatch", patterns)

    def accepts(self, rel_path: str) -> bool:
        """True if *rel_path* (POSIX, relative to root) should be indexed."""
        pure = PurePosixPath(rel_path)
        if pure.suffix.lower() in self._extensions:
            return False
        if pure.name in self._filenames:
            return False
        return not self._spec.match_file(rel_path)


def walk_files(root: Path) -> Iterator[str]:
    """Yield every file under *root* as a POSIX relative path.

    Skips ``.git`` and ``node_modules`` directories at any depth. Symlinked
    directories are not followed.
    """
    root = Path(root)
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIPPED_DIRS)
        base = Path(dirpath)
        for name in sorted(filenames):
            full = base / name
            if full.is_file():
                yield full.relative_to(root).as_posix()
