"""Analysis of a single library entry."""

from __future__ import annotations

import logging
from typing import Callable

from magindex.library.lifecycle import complete_analysis, fail_analysis, release_guarded
from magindex.library.models import LibraryEntry
from magindex.library.store import EntryStore

from .errors import ExtractionError
from .extractor import MetadataExtractor
from .naming import DEFAULT_EDITION_WIDTH, DEFAULT_PREFIX, derive_name, normalize_edition

LOGGER = logging.getLogger(__name__)

EMPTY_FILE_MESSAGE = (
    "The file is empty (0 bytes). Files synced from cloud storage must be fully "
    "downloaded to this device first."
)


class AnalysisTask:
    """Run the extractor for one admitted entry and settle its final status.

    The task never raises for a failed analysis; it records the failure on the
    entry instead. Results for entries that left the store, or that are no
    longer ``analyzing`` when the extractor answers, are discarded.
    """

    def __init__(
        self,
        store: EntryStore,
        extractor: MetadataExtractor,
        *,
        prefix: str = DEFAULT_PREFIX,
        edition_width: int = DEFAULT_EDITION_WIDTH,
    ) -> None:
        self._store = store
        self._extractor = extractor
        self._prefix = prefix
        self._edition_width = edition_width

    async def run(self, identity: str) -> LibraryEntry | None:
        """Analyze the entry for ``identity``.

        Only entries that are ``analyzing`` in the store are analyzed. Entries
        that were ``done`` or ``renamed`` can never get there, since
        ``begin_analysis`` accepts ``pending`` entries only. An entry carrying a
        manual override is released back to ``done`` without calling the
        extractor.

        Returns:
            LibraryEntry | None: The settled entry, or None when the result was discarded.
        """
        entry = self._store.get(identity)
        if entry is None or entry.status != "analyzing":
            LOGGER.debug("Entry %s is no longer in flight; nothing to analyze.", identity)
            return None

        if entry.manual_override:
            LOGGER.warning("Refusing to re-analyze %s; releasing it.", entry.original_name)
            return self._store.upsert(release_guarded(entry))

        try:
            data = await self._read(entry)
            metadata = await self._extractor.analyze(data, entry.original_name)
        except Exception as exc:
            message = str(exc) or type(exc).__name__
            LOGGER.warning("Analysis failed for %s: %s", entry.original_name, message)
            return self._settle(identity, lambda current: fail_analysis(current, message))

        edition = normalize_edition(metadata.magazine_edition, width=self._edition_width)
        name = derive_name(
            metadata.magazine_edition,
            metadata.filename_slug,
            prefix=self._prefix,
            width=self._edition_width,
        )
        label = f"{self._prefix} {edition}"
        LOGGER.info("Analyzed %s -> %s", entry.original_name, name)
        return self._settle(
            identity, lambda current: complete_analysis(current, metadata, name, label)
        )

    async def _read(self, entry: LibraryEntry) -> bytes:
        if entry.source is None:
            raise ExtractionError("No readable source is attached to this entry.")
        if entry.size == 0:
            raise ExtractionError(EMPTY_FILE_MESSAGE)
        try:
            data = await entry.source.read_bytes()
        except OSError as exc:
            raise ExtractionError(
                f"Read error: {exc}. Check that the file is available locally."
            ) from exc
        if not data:
            raise ExtractionError(EMPTY_FILE_MESSAGE)
        return data

    def _settle(
        self, identity: str, change: Callable[[LibraryEntry], LibraryEntry]
    ) -> LibraryEntry | None:
        current = self._store.get(identity)
        if current is None or current.status != "analyzing":
            LOGGER.info("Discarding analysis result for %s; the entry moved on.", identity)
            return None
        return self._store.upsert(change(current))


__all__ = ["AnalysisTask", "EMPTY_FILE_MESSAGE"]
