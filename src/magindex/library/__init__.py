"""Library entries, their lifecycle, and the store that owns them."""

from .errors import EntryNotFoundError, InvalidTransitionError, LibraryError
from .fingerprint import compute_fingerprint
from .models import (
    ENTRY_STATUSES,
    EntryStatus,
    IssueMetadata,
    LibraryEntry,
    LogAction,
    LogEntry,
    create_entry,
)
from .store import EntryStore

__all__ = [
    "ENTRY_STATUSES",
    "EntryNotFoundError",
    "EntryStatus",
    "EntryStore",
    "InvalidTransitionError",
    "IssueMetadata",
    "LibraryEntry",
    "LibraryError",
    "LogAction",
    "LogEntry",
    "compute_fingerprint",
    "create_entry",
]
