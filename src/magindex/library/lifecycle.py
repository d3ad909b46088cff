"""State transitions for library entries.

Every function here is pure: it receives an entry and returns the next value.
The store decides when to apply them.
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping

from .errors import InvalidTransitionError
from .models import EntryStatus, IssueMetadata, LibraryEntry

ALLOWED_TRANSITIONS: Mapping[EntryStatus, frozenset[EntryStatus]] = {
    "pending": frozenset({"analyzing", "done"}),
    "analyzing": frozenset({"done", "error"}),
    "done": frozenset({"renamed", "done"}),
    "error": frozenset({"pending", "done"}),
    "renamed": frozenset({"done"}),
    "skipped": frozenset(),
}

# Statuses that the scheduler never revisits.
SCHEDULING_TERMINAL: frozenset[EntryStatus] = frozenset({"renamed", "error", "skipped"})


def check_transition(entry: LibraryEntry, target: EntryStatus) -> None:
    """Raise if ``entry`` may not move to ``target``."""
    if target not in ALLOWED_TRANSITIONS[entry.status]:
        raise InvalidTransitionError(
            f"{entry.original_name}: cannot move from '{entry.status}' to '{target}'."
        )


def is_admissible(entry: LibraryEntry) -> bool:
    """Return True when the scheduler may start analyzing ``entry``."""
    return entry.status == "pending" and not entry.manual_override


def begin_analysis(entry: LibraryEntry) -> LibraryEntry:
    check_transition(entry, "analyzing")
    return entry.evolve(status="analyzing")


def complete_analysis(
    entry: LibraryEntry,
    metadata: IssueMetadata,
    suggested_name: str,
    edition_label: str,
    *,
    now: datetime | None = None,
) -> LibraryEntry:
    """Record a successful extraction and the derived canonical name."""
    check_transition(entry, "done")
    message = (
        f"{edition_label} [{metadata.rpg_system}] ({metadata.content_type}) - "
        f"{metadata.official_title}"
    )
    return entry.with_log(
        "ANALYZE",
        message,
        now=now,
        status="done",
        metadata=metadata,
        suggested_name=suggested_name,
        last_error=None,
    )


def fail_analysis(
    entry: LibraryEntry, message: str, *, now: datetime | None = None
) -> LibraryEntry:
    """Record an analysis failure; metadata and suggested name stay untouched."""
    check_transition(entry, "error")
    return entry.with_log("ERROR", message, now=now, status="error", last_error=message)


def release_guarded(entry: LibraryEntry) -> LibraryEntry:
    """Hand back a manually named entry that should never have been admitted."""
    check_transition(entry, "done")
    return entry.evolve(status="done")


def retry(entry: LibraryEntry, *, now: datetime | None = None) -> LibraryEntry:
    """Reset a failed entry so the scheduler admits it again."""
    if entry.status != "error":
        raise InvalidTransitionError(
            f"{entry.original_name}: only entries in 'error' can be retried."
        )
    return entry.with_log(
        "RESTORE", "Retry requested.", now=now, status="pending", last_error=None
    )


def manual_edit(
    entry: LibraryEntry, new_name: str, *, now: datetime | None = None
) -> LibraryEntry:
    """Apply a human-chosen filename. The entry lands in ``done`` and is never re-analyzed."""
    name = new_name.strip()
    if not name:
        raise ValueError("The new filename must not be empty.")
    if entry.status == "analyzing":
        raise InvalidTransitionError(
            f"{entry.original_name}: cannot edit while analysis is in flight."
        )
    check_transition(entry, "done")
    previous = entry.suggested_name or entry.original_name
    return entry.with_log(
        "EDIT",
        f"Name manually changed from '{previous}' to '{name}'.",
        now=now,
        status="done",
        suggested_name=name,
        manual_override=True,
        last_error=None,
    )


def mark_renamed(
    entry: LibraryEntry, message: str, *, now: datetime | None = None
) -> LibraryEntry:
    check_transition(entry, "renamed")
    return entry.with_log("RENAME", message, now=now, status="renamed")


def record_rename_failure(
    entry: LibraryEntry, message: str, *, now: datetime | None = None
) -> LibraryEntry:
    """Log a failed rename. The status is left as is so the entry can be retried."""
    return entry.with_log("ERROR", message, now=now)


__all__ = [
    "ALLOWED_TRANSITIONS",
    "SCHEDULING_TERMINAL",
    "begin_analysis",
    "check_transition",
    "complete_analysis",
    "fail_analysis",
    "is_admissible",
    "manual_edit",
    "mark_renamed",
    "record_rename_failure",
    "release_guarded",
    "retry",
]
