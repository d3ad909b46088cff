"""Discovered file descriptors and the write capability attached to them."""

from __future__ import annotations

import asyncio
from pathlib import Path


class FileHandle:
    """Write capability over one discovered file.

    The handle tracks the file across renames, so ``path`` always points at the
    current location on disk.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """Return the current path of the file."""
        return self._path

    @property
    def name(self) -> str:
        """Return the current filename."""
        return self._path.name

    async def rename(self, new_name: str) -> Path:
        """Rename the file in place, keeping it in the same directory.

        Args:
            new_name: Bare filename to apply.

        Returns:
            Path: The new location of the file.

        Raises:
            ValueError: If ``new_name`` is empty or contains a path separator.
            FileExistsError: If another file already uses ``new_name``.
            OSError: If the filesystem rejects the rename.
        """
        return await asyncio.to_thread(self._rename, new_name)

    def _rename(self, new_name: str) -> Path:
        if not new_name or "/" in new_name or "\\" in new_name or new_name in {".", ".."}:
            raise ValueError(f"Invalid target filename: {new_name!r}")
        destination = self._path.with_name(new_name)
        if destination == self._path:
            return destination
        if destination.exists():
            raise FileExistsError(f"Destination already exists: {destination}")
        self._path.rename(destination)
        self._path = destination
        return destination

    def __repr__(self) -> str:
        return f"FileHandle({str(self._path)!r})"


class DiscoveredFile:
    """A PDF found by discovery.

    Attributes:
        path: Absolute path at discovery time.
        relative_path: POSIX path relative to the selected root.
        size: File size in bytes.
        last_modified: Modification time in integer milliseconds since the epoch.
        handle: Write capability, absent when the file is read-only.
    """

    __slots__ = ("path", "relative_path", "size", "last_modified", "handle")

    def __init__(
        self,
        path: Path,
        relative_path: str,
        size: int,
        last_modified: int,
        handle: FileHandle | None = None,
    ) -> None:
        self.path = path
        self.relative_path = relative_path
        self.size = size
        self.last_modified = last_modified
        self.handle = handle

    @property
    def name(self) -> str:
        return self.path.name

    async def read_bytes(self) -> bytes:
        """Return the file contents, following the handle if the file was renamed."""
        current = self.handle.path if self.handle is not None else self.path
        return await asyncio.to_thread(current.read_bytes)


__all__ = ["FileHandle", "DiscoveredFile"]
