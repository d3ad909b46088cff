"""Catalog session tying discovery, analysis, renaming, and the registry together."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable

from magindex.analysis.extractor import MetadataExtractor
from magindex.analysis.task import AnalysisTask
from magindex.config import ConfigError, MagindexConfig
from magindex.discovery import DirectoryScanner
from magindex.library import EntryNotFoundError, EntryStore, LibraryEntry, create_entry
from magindex.library import lifecycle
from magindex.library.models import utcnow
from magindex.registry import (
    Registry,
    RegistryRecord,
    export_records,
    load_registry,
    merge_entry,
    merge_registry,
    write_registry,
)
from magindex.rename import (
    SCRIPT_FILENAMES,
    RenameBatchResult,
    RenameExecutor,
    RenameOutcome,
    generate_script,
)
from magindex.scheduling import Scheduler

LOGGER = logging.getLogger(__name__)


class CatalogSession:
    """One cataloging run over a selection of magazine PDFs.

    The session owns the entry store, the imported registry, and the scheduler.
    The extractor may be attached late, so that a run which only restores
    entries from a registry never needs credentials.
    """

    def __init__(
        self,
        config: MagindexConfig,
        extractor: MetadataExtractor | None = None,
    ) -> None:
        self._config = config
        self._extractor = extractor
        self._store = EntryStore()
        self._registry = Registry()
        self._scheduler: Scheduler | None = None
        self._executor = RenameExecutor(self._store)

    @property
    def config(self) -> MagindexConfig:
        return self._config

    @property
    def store(self) -> EntryStore:
        return self._store

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def extractor(self) -> MetadataExtractor | None:
        return self._extractor

    @extractor.setter
    def extractor(self, extractor: MetadataExtractor) -> None:
        if self._scheduler is not None and self._scheduler.in_flight:
            raise RuntimeError("Cannot swap the extractor while analysis is in flight.")
        self._extractor = extractor
        self._scheduler = None

    @property
    def scheduler(self) -> Scheduler:
        """Return the scheduler, building it on first use.

        Raises:
            ConfigError: If no extractor has been attached.
        """
        if self._scheduler is None:
            if self._extractor is None:
                raise ConfigError("No metadata extractor is configured for analysis.")
            task = AnalysisTask(
                self._store,
                self._extractor,
                prefix=self._config.naming.prefix,
                edition_width=self._config.naming.edition_width,
            )
            self._scheduler = Scheduler(
                self._store, task, budget=self._config.processing.concurrency
            )
        return self._scheduler

    @property
    def entries(self) -> list[LibraryEntry]:
        return list(self._store)

    def has_admissible(self) -> bool:
        return any(lifecycle.is_admissible(entry) for entry in self._store)

    def import_registry(self, registry: Registry, *, now: datetime | None = None) -> int:
        """Adopt ``registry`` and recover prior state for entries already discovered.

        Only entries that are still ``pending`` without a manual override are
        merged, so history gathered in this session is never replaced.

        Returns:
            int: Number of entries whose state was recovered.
        """
        self._registry = registry
        stamp = now or utcnow()
        restored = 0
        for entry in self._store:
            if entry.status != "pending" or entry.manual_override:
                continue
            merged = merge_entry(entry, registry, now=stamp)
            if merged is not entry:
                self._store.upsert(merged)
                restored += 1
        LOGGER.info(
            "Imported %d registry record(s); recovered %d entry(ies).", len(registry), restored
        )
        return restored

    def load_registry(self, path: Path) -> int:
        """Read a registry file and import it.

        Raises:
            RegistryError: If the file is unreadable or malformed.
        """
        return self.import_registry(load_registry(path))

    def discover(
        self,
        paths: Iterable[Path],
        *,
        read_only: bool = False,
        now: datetime | None = None,
    ) -> list[LibraryEntry]:
        """Scan ``paths`` and add the new PDFs to the store.

        Files already in the store (same fingerprint) are not added twice.
        Prior state is recovered from the imported registry.

        Raises:
            DiscoveryError: If no PDF was found.
        """
        processing = self._config.processing
        scanner = DirectoryScanner(
            recursive=processing.recurse_directories,
            include_hidden=processing.process_hidden_files,
            follow_symlinks=processing.follow_symlinks,
            read_only=read_only,
        )
        known = {entry.fingerprint for entry in self._store}
        fresh: list[LibraryEntry] = []
        for found in scanner.discover(paths):
            entry = create_entry(found, now=now)
            if entry.fingerprint in known:
                continue
            known.add(entry.fingerprint)
            fresh.append(entry)
        merged = merge_registry(fresh, self._registry, now=now)
        self._store.add(merged)
        return merged

    async def analyze(self) -> dict[str, int]:
        """Analyze every admissible entry and wait until the scheduler is idle.

        Returns:
            dict[str, int]: Status counts once analysis has settled.
        """
        if self.has_admissible():
            await self.scheduler.drain()
        return self._store.counts()

    def retry_errors(self) -> int:
        """Send every failed entry back to ``pending``."""
        retried = 0
        for entry in self._store.with_status("error"):
            self._store.upsert(lifecycle.retry(entry))
            retried += 1
        return retried

    def retry(self, identity: str) -> LibraryEntry:
        return self._store.update(identity, lifecycle.retry)

    def manual_edit(self, name_or_path: str, new_name: str) -> LibraryEntry:
        """Apply a human-chosen name to the entry matching ``name_or_path``.

        Raises:
            EntryNotFoundError: If no entry matches.
            InvalidTransitionError: If the entry cannot be edited right now.
            ValueError: If ``new_name`` is empty.
        """
        entry = self._store.find(name_or_path)
        if entry is None:
            raise EntryNotFoundError(f"No entry matches {name_or_path!r}.")
        return self._store.upsert(lifecycle.manual_edit(entry, new_name))

    async def rename(self, identity: str) -> RenameOutcome:
        return await self._executor.rename_entry(identity)

    async def rename_all(self) -> RenameBatchResult:
        return await self._executor.rename_batch()

    def offline_script(self, fmt: str) -> tuple[str, str]:
        """Return ``(filename, content)`` of the offline rename script for ``fmt``."""
        return SCRIPT_FILENAMES[fmt], generate_script(fmt, self._store)

    def mark_offline_renamed(self, artifact: str) -> int:
        return self._executor.mark_offline_renamed(f"Rename script ({artifact}) generated.")

    def reset(self) -> None:
        """Discard entries, the imported registry, and in-flight bookkeeping."""
        if self._scheduler is not None:
            self._scheduler.reset()
        self._store.reset()
        self._registry = Registry()
        LOGGER.info("Session reset.")

    def export_records(self, *, now: datetime | None = None) -> list[RegistryRecord]:
        return export_records(self._store, now=now)

    def save_registry(self, path: Path, *, now: datetime | None = None) -> int:
        return write_registry(path, self._store, now=now)


__all__ = ["CatalogSession"]
