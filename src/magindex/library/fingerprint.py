"""Metadata-only identity for discovered files."""

from __future__ import annotations

FINGERPRINT_SEPARATOR = "::"


def compute_fingerprint(relative_path: str, size: int, last_modified: int) -> str:
    """Return the ``path::size::mtime`` fingerprint of a file.

    The fingerprint is stable across re-scans of an unchanged file and differs
    as soon as the path, the size, or the modification time changes. No file
    content is read.

    Args:
        relative_path: POSIX path relative to the selected root.
        size: File size in bytes.
        last_modified: Modification time in integer milliseconds since the epoch.

    Returns:
        str: Fingerprint string.
    """
    return FINGERPRINT_SEPARATOR.join((relative_path, str(size), str(last_modified)))


__all__ = ["compute_fingerprint", "FINGERPRINT_SEPARATOR"]
