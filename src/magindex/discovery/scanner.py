"""PDF discovery over directory trees and flat file selections."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, Iterator

from .errors import DiscoveryError
from .models import DiscoveredFile, FileHandle

LOGGER = logging.getLogger(__name__)

PDF_SUFFIX = ".pdf"


def _is_hidden(path: Path) -> bool:
    return any(part.startswith(".") for part in path.parts if part not in (".", ".."))


def is_pdf(path: Path) -> bool:
    """Return True when the path carries a ``.pdf`` extension in any letter case."""
    return path.name.lower().endswith(PDF_SUFFIX)


class DirectoryScanner:
    """Discover PDFs within a directory tree subject to configuration filters."""

    def __init__(
        self,
        *,
        recursive: bool = True,
        include_hidden: bool = False,
        follow_symlinks: bool = False,
        read_only: bool = False,
    ) -> None:
        self.recursive = recursive
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.read_only = read_only

    def scan(self, root: Path) -> Iterator[DiscoveredFile]:
        """Yield PDFs discovered under root, in a stable path order."""
        root = root.expanduser().resolve()
        if not root.exists():
            return

        if root.is_file():
            if is_pdf(root):
                found = self._describe(root, root.name)
                if found is not None:
                    yield found
            return

        for path in sorted(self._iter_paths(root)):
            if not is_pdf(path):
                continue
            if not path.is_file() and not (self.follow_symlinks and path.is_symlink()):
                continue
            relative = path.relative_to(root)
            if not self.include_hidden and _is_hidden(relative):
                continue
            found = self._describe(path, relative.as_posix())
            if found is not None:
                yield found

    def discover(self, paths: Iterable[Path]) -> list[DiscoveredFile]:
        """Discover PDFs across several selections.

        Directories are traversed; individual files form a flat selection whose
        relative path is the bare filename.

        Raises:
            DiscoveryError: If no PDF was found in any selection.
        """
        selections = [Path(path) for path in paths]
        found: list[DiscoveredFile] = []
        for selection in selections:
            found.extend(self.scan(selection))
        if not found:
            joined = ", ".join(str(path) for path in selections) or "<nothing>"
            raise DiscoveryError(f"No PDF files found in {joined}.")
        LOGGER.info("Discovered %d PDF file(s).", len(found))
        return found

    def _describe(self, path: Path, relative_path: str) -> DiscoveredFile | None:
        try:
            stat = path.stat(follow_symlinks=self.follow_symlinks)
        except OSError as exc:
            LOGGER.warning("Skipping %s: %s", path, exc)
            return None
        handle = None if self.read_only or not _writable(path) else FileHandle(path)
        return DiscoveredFile(
            path=path,
            relative_path=relative_path,
            size=stat.st_size,
            last_modified=stat.st_mtime_ns // 1_000_000,
            handle=handle,
        )

    def _iter_paths(self, root: Path) -> Iterable[Path]:
        if self.recursive:
            yield from root.rglob("*")
        else:
            yield from root.iterdir()


def _writable(path: Path) -> bool:
    # Renaming needs write access to the containing directory as well.
    return os.access(path, os.W_OK) and os.access(path.parent, os.W_OK)


__all__ = ["DirectoryScanner", "is_pdf", "PDF_SUFFIX"]
