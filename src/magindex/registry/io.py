"""Registry import and export."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from pydantic import ValidationError

from magindex.library.models import LibraryEntry, utcnow

from .errors import RegistryError
from .models import Registry, RegistryRecord

LOGGER = logging.getLogger(__name__)


def entry_to_record(entry: LibraryEntry, *, now: datetime | None = None) -> RegistryRecord:
    """Project a library entry onto its persisted record."""
    return RegistryRecord(
        fingerprint=entry.fingerprint,
        original_path=entry.relative_path,
        current_name=entry.suggested_name,
        file_size=entry.size,
        last_modified=entry.last_modified,
        metadata=entry.metadata,
        status=entry.status,
        is_manual_override=entry.manual_override,
        logs=list(entry.log),
        last_updated=now or utcnow(),
    )


def export_records(
    entries: Iterable[LibraryEntry], *, now: datetime | None = None
) -> list[RegistryRecord]:
    """Return registry records for ``entries`` in store order, sharing one timestamp."""
    stamp = now or utcnow()
    return [entry_to_record(entry, now=stamp) for entry in entries]


def dump_registry(records: Iterable[RegistryRecord]) -> str:
    """Serialize records to the JSON wire format."""
    payload = [record.model_dump(mode="json", by_alias=True) for record in records]
    return json.dumps(payload, indent=2, ensure_ascii=False)


def write_registry(
    path: Path, entries: Iterable[LibraryEntry], *, now: datetime | None = None
) -> int:
    """Export ``entries`` to ``path`` and return the number of records written."""
    records = export_records(entries, now=now)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dump_registry(records), encoding="utf-8")
    LOGGER.info("Exported %d registry record(s) to %s.", len(records), path)
    return len(records)


def parse_registry(data: Any) -> Registry:
    """Validate decoded JSON and build a :class:`Registry`.

    Records without a fingerprint are ignored. Anything else that does not fit
    the record shape rejects the whole import.

    Raises:
        RegistryError: If the document is not a list of valid records.
    """
    if not isinstance(data, list):
        raise RegistryError("Invalid registry: expected a JSON list of records.")

    records: list[RegistryRecord] = []
    skipped = 0
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise RegistryError(f"Invalid registry: item {index} is not an object.")
        if not item.get("fingerprint"):
            skipped += 1
            continue
        try:
            records.append(RegistryRecord.model_validate(item))
        except ValidationError as exc:
            raise RegistryError(f"Invalid registry record at index {index}: {exc}") from exc

    if skipped:
        LOGGER.info("Ignored %d registry record(s) without a fingerprint.", skipped)
    return Registry.from_records(records)


def load_registry(path: Path) -> Registry:
    """Read and validate a registry file.

    Raises:
        RegistryError: If the file cannot be read or is not a valid registry.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RegistryError(f"Could not read registry {path}: {exc}") from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RegistryError(f"Invalid registry JSON in {path}: {exc}") from exc
    return parse_registry(data)


__all__ = [
    "dump_registry",
    "entry_to_record",
    "export_records",
    "load_registry",
    "parse_registry",
    "write_registry",
]
