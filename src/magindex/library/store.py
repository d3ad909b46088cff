"""In-memory entry store with whole-entry replacement."""

from __future__ import annotations

from collections import Counter
from typing import Callable, Iterable, Iterator

from .errors import EntryNotFoundError
from .lifecycle import check_transition
from .models import ENTRY_STATUSES, EntryStatus, LibraryEntry


class EntryStore:
    """Ordered collection of library entries keyed by identity.

    Entries keep their insertion order, which is discovery order. Mutation
    always replaces the stored value with a new entry; callers never change an
    entry in place. ``version`` increases on every mutation so that callers can
    tell whether a scheduling pass is due.
    """

    def __init__(self) -> None:
        self._entries: dict[str, LibraryEntry] = {}
        self._version = 0

    @property
    def version(self) -> int:
        return self._version

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LibraryEntry]:
        return iter(list(self._entries.values()))

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def get(self, identity: str) -> LibraryEntry | None:
        return self._entries.get(identity)

    def require(self, identity: str) -> LibraryEntry:
        """Return the entry for ``identity``.

        Raises:
            EntryNotFoundError: If the identity is unknown.
        """
        entry = self._entries.get(identity)
        if entry is None:
            raise EntryNotFoundError(f"No entry with identity {identity!r}")
        return entry

    def add(self, entries: Iterable[LibraryEntry]) -> list[LibraryEntry]:
        """Append new entries at the end of the store.

        Raises:
            ValueError: If an identity is already present.
        """
        added = list(entries)
        for entry in added:
            if entry.identity in self._entries:
                raise ValueError(f"Identity {entry.identity!r} is already in the store")
        for entry in added:
            self._entries[entry.identity] = entry
        if added:
            self._version += 1
        return added

    def upsert(self, entry: LibraryEntry) -> LibraryEntry:
        """Insert ``entry`` or replace the stored entry with the same identity.

        Raises:
            ValueError: If the replacement describes a different file.
        """
        current = self._entries.get(entry.identity)
        if current is not None and current.fingerprint != entry.fingerprint:
            raise ValueError(
                f"Identity {entry.identity!r} belongs to {current.relative_path}, "
                f"not {entry.relative_path}"
            )
        self._entries[entry.identity] = entry
        self._version += 1
        return entry

    def update(
        self, identity: str, change: Callable[[LibraryEntry], LibraryEntry]
    ) -> LibraryEntry:
        """Replace the entry for ``identity`` with ``change(entry)``."""
        return self.upsert(change(self.require(identity)))

    def transition(self, identity: str, status: EntryStatus) -> LibraryEntry:
        """Move an entry to ``status`` after checking the lifecycle allows it."""
        entry = self.require(identity)
        check_transition(entry, status)
        return self.upsert(entry.evolve(status=status))

    def with_status(self, *statuses: EntryStatus) -> list[LibraryEntry]:
        wanted = set(statuses)
        return [entry for entry in self._entries.values() if entry.status in wanted]

    def count(self, status: EntryStatus) -> int:
        return sum(1 for entry in self._entries.values() if entry.status == status)

    def counts(self) -> dict[str, int]:
        """Return the number of entries per status, including zero counts."""
        tally = Counter(entry.status for entry in self._entries.values())
        return {status: tally.get(status, 0) for status in ENTRY_STATUSES}

    def find(self, name_or_path: str) -> LibraryEntry | None:
        """Return the first entry whose path, original name, or suggested name matches."""
        for entry in self._entries.values():
            if name_or_path in (entry.relative_path, entry.original_name):
                return entry
        for entry in self._entries.values():
            if entry.suggested_name == name_or_path:
                return entry
        return None

    def reset(self) -> None:
        """Drop every entry."""
        self._entries.clear()
        self._version += 1


__all__ = ["EntryStore"]
