"""Apply suggested names to files on disk."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from magindex.library.lifecycle import mark_renamed, record_rename_failure
from magindex.library.models import LibraryEntry
from magindex.library.store import EntryStore

from .errors import MissingHandleError, RenameError

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenameOutcome:
    """Result of one rename attempt."""

    identity: str
    ok: bool
    message: str


@dataclass
class RenameBatchResult:
    """Outcomes of a batch rename.

    Attributes:
        outcomes: One outcome per attempted entry, in store order.
        offline: True when no entry had write access and nothing was attempted.
    """

    outcomes: list[RenameOutcome] = field(default_factory=list)
    offline: bool = False

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if not outcome.ok)


class RenameExecutor:
    """Rename analyzed entries one at a time, isolating per-entry failures."""

    def __init__(self, store: EntryStore) -> None:
        self._store = store

    async def rename_entry(self, identity: str) -> RenameOutcome:
        """Rename the file behind ``identity`` to its suggested name.

        Filesystem failures and a missing write handle are recorded on the
        entry, which stays ``done`` so the rename can be attempted again.

        Raises:
            EntryNotFoundError: If the identity is unknown.
            RenameError: If the entry is not ``done`` or has no suggested name.
            MissingHandleError: If the entry has no write access.
        """
        entry = self._store.require(identity)
        if entry.status != "done":
            raise RenameError(
                f"{entry.original_name}: only analyzed entries can be renamed "
                f"(status '{entry.status}')."
            )
        if not entry.suggested_name:
            raise RenameError(f"{entry.original_name}: no suggested name to apply.")
        if entry.handle is None:
            error = MissingHandleError(f"{entry.original_name}: no write access to this file.")
            message = f"Rename failed: {error}"
            LOGGER.warning("%s", message)
            self._record(identity, lambda current: record_rename_failure(current, message))
            raise error

        try:
            await entry.handle.rename(entry.suggested_name)
        except (OSError, ValueError) as exc:
            message = f"Rename failed: {exc}"
            LOGGER.warning("%s: %s", entry.original_name, message)
            self._record(identity, lambda current: record_rename_failure(current, message))
            return RenameOutcome(identity=identity, ok=False, message=message)

        message = f"Renamed to {entry.suggested_name}"
        self._record(identity, lambda current: mark_renamed(current, message))
        LOGGER.info("%s: %s", entry.original_name, message)
        return RenameOutcome(identity=identity, ok=True, message=message)

    async def rename_batch(self) -> RenameBatchResult:
        """Rename every ``done`` entry whose suggested name differs from disk.

        Entries are renamed one at a time and a failure never stops the batch.
        Returns an ``offline`` result without touching the store when no entry
        has write access.
        """
        if not any(entry.has_write_access for entry in self._store):
            LOGGER.info("No entry has write access; an offline rename script is needed.")
            return RenameBatchResult(offline=True)

        result = RenameBatchResult()
        for entry in self._store:
            if not entry.needs_rename:
                continue
            try:
                outcome = await self.rename_entry(entry.identity)
            except RenameError as exc:
                outcome = RenameOutcome(identity=entry.identity, ok=False, message=str(exc))
            result.outcomes.append(outcome)
        return result

    def mark_offline_renamed(self, note: str) -> int:
        """Mark every ``done`` entry as renamed by an offline artifact.

        Returns:
            int: Number of entries marked.
        """
        marked = 0
        for entry in self._store.with_status("done"):
            self._store.upsert(mark_renamed(entry, note))
            marked += 1
        return marked

    def _record(self, identity: str, change: Callable[[LibraryEntry], LibraryEntry]) -> None:
        # A reset while the rename was awaited leaves nothing to record on.
        if identity in self._store:
            self._store.update(identity, change)


__all__ = ["RenameBatchResult", "RenameExecutor", "RenameOutcome"]
