"""Reconcile a fresh scan against an imported registry."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from magindex.library.models import EntryStatus, LibraryEntry, LogEntry, utcnow

from .models import Registry, RegistryRecord

FINGERPRINT_RESTORE_MESSAGE = "Registry record recovered (fingerprint)."
FILENAME_RESTORE_MESSAGE = "Registry record recovered (filename)."


def _restore(
    entry: LibraryEntry,
    record: RegistryRecord,
    status: EntryStatus,
    message: str,
    now: datetime,
) -> LibraryEntry:
    marker = LogEntry(timestamp=now, action="RESTORE", message=message)
    return entry.evolve(
        status=status,
        metadata=record.metadata,
        suggested_name=record.current_name,
        manual_override=record.is_manual_override,
        last_error=None,
        log=(*record.logs, marker),
    )


def merge_entry(entry: LibraryEntry, registry: Registry, *, now: datetime) -> LibraryEntry:
    """Recover prior state for one freshly discovered entry.

    A fingerprint match keeps ``renamed`` and maps every other persisted status
    to ``done``. Failing that, a record whose current name equals the entry's
    filename means a previous run already renamed this file, so the entry is
    forced to ``renamed``. Otherwise the entry is returned unchanged.
    """
    record = registry.by_fingerprint(entry.fingerprint)
    if record is not None:
        status: EntryStatus = "renamed" if record.status == "renamed" else "done"
        return _restore(entry, record, status, FINGERPRINT_RESTORE_MESSAGE, now)

    # Name-only matches can misclassify an unrelated file that happens to share the name.
    record = registry.by_current_name(entry.original_name)
    if record is not None:
        return _restore(entry, record, "renamed", FILENAME_RESTORE_MESSAGE, now)

    return entry


def merge_registry(
    entries: Iterable[LibraryEntry],
    registry: Registry,
    *,
    now: datetime | None = None,
) -> list[LibraryEntry]:
    """Return ``entries`` with prior registry state recovered where it exists.

    The registry is never modified. With a fixed ``now`` the result depends on
    the inputs alone.
    """
    stamp = now or utcnow()
    return [merge_entry(entry, registry, now=stamp) for entry in entries]


__all__ = [
    "FILENAME_RESTORE_MESSAGE",
    "FINGERPRINT_RESTORE_MESSAGE",
    "merge_entry",
    "merge_registry",
]
