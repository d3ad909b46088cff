"""Persisted registry records."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from magindex.library.models import IssueMetadata, LogEntry, format_timestamp, utcnow


class RegistryRecord(BaseModel):
    """File-shaped projection of a library entry that outlives a session.

    Attributes:
        fingerprint: ``path::size::mtime`` identity of the file.
        original_path: Path relative to the selected root at scan time.
        current_name: Suggested (or applied) filename; None while unanalyzed.
        file_size: File size in bytes.
        last_modified: Modification time in milliseconds since the epoch.
        metadata: Extracted metadata, if any.
        status: Entry status at export time.
        is_manual_override: Whether a human chose ``current_name``.
        logs: Full audit trail.
        last_updated: Export timestamp.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )

    fingerprint: str
    original_path: str = ""
    current_name: Optional[str] = None
    file_size: int = 0
    last_modified: int = 0
    metadata: Optional[IssueMetadata] = None
    status: str = "pending"
    is_manual_override: bool = False
    logs: List[LogEntry] = Field(default_factory=list)
    last_updated: datetime = Field(default_factory=utcnow)

    @field_serializer("last_updated")
    def _serialize_last_updated(self, value: datetime) -> str:
        return format_timestamp(value)


class Registry(BaseModel):
    """Imported registry keyed by fingerprint, with a current-name index."""

    model_config = ConfigDict(frozen=True)

    records: Dict[str, RegistryRecord] = Field(default_factory=dict)

    @classmethod
    def from_records(cls, records: List[RegistryRecord]) -> "Registry":
        # Later records win, matching how the registry was written.
        return cls(records={record.fingerprint: record for record in records})

    def __len__(self) -> int:
        return len(self.records)

    def by_fingerprint(self, fingerprint: str) -> RegistryRecord | None:
        return self.records.get(fingerprint)

    def by_current_name(self, name: str) -> RegistryRecord | None:
        """Return the last record whose ``current_name`` equals ``name``."""
        match: RegistryRecord | None = None
        for record in self.records.values():
            if record.current_name and record.current_name == name:
                match = record
        return match


__all__ = ["Registry", "RegistryRecord"]
