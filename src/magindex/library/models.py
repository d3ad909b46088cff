"""Library entry data models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from magindex.discovery.models import DiscoveredFile, FileHandle

from .fingerprint import compute_fingerprint

EntryStatus = Literal["pending", "analyzing", "done", "renamed", "error", "skipped"]
LogAction = Literal["SCAN", "ANALYZE", "RENAME", "ERROR", "RESTORE", "EDIT"]

ENTRY_STATUSES: tuple[EntryStatus, ...] = (
    "pending",
    "analyzing",
    "done",
    "renamed",
    "error",
    "skipped",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a timestamp as ISO-8601 UTC with a ``Z`` suffix and millisecond precision."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class IssueMetadata(BaseModel):
    """Bibliographic metadata extracted for one magazine document.

    Attributes:
        official_title: Headline of the article.
        magazine_edition: Edition number as reported by the service.
        magazine_section: Recurring column the article belongs to.
        rpg_system: Rules system the material targets.
        content_type: Nature of the material (adventure, rules, review, ...).
        summary: Short synopsis.
        filename_slug: Slug used to build the canonical filename.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    official_title: str
    magazine_edition: str
    magazine_section: str
    rpg_system: str
    content_type: str
    summary: str
    filename_slug: str


class LogEntry(BaseModel):
    """One line of an entry's audit trail."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    action: LogAction
    message: str

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_timestamp(value)


class LibraryEntry(BaseModel):
    """A discovered document tracked through analysis and renaming.

    Entries are immutable values. Every change yields a new entry through
    :meth:`evolve` or :meth:`with_log`, and the store swaps the whole value.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    identity: str
    fingerprint: str
    original_name: str
    relative_path: str
    size: int
    last_modified: int
    handle: Optional[FileHandle] = Field(default=None, exclude=True, repr=False)
    source: Optional[DiscoveredFile] = Field(default=None, exclude=True, repr=False)
    status: EntryStatus = "pending"
    metadata: Optional[IssueMetadata] = None
    suggested_name: Optional[str] = None
    manual_override: bool = False
    last_error: Optional[str] = None
    log: Tuple[LogEntry, ...] = ()

    @property
    def has_write_access(self) -> bool:
        return self.handle is not None

    @property
    def needs_rename(self) -> bool:
        """Return True for analyzed entries whose suggested name differs from disk."""
        return (
            self.status == "done"
            and bool(self.suggested_name)
            and self.suggested_name != self.original_name
        )

    def evolve(self, **changes: object) -> "LibraryEntry":
        """Return a copy of the entry with ``changes`` applied."""
        return self.model_copy(update=changes)

    def with_log(
        self,
        action: LogAction,
        message: str,
        *,
        now: datetime | None = None,
        **changes: object,
    ) -> "LibraryEntry":
        """Return a copy with one log line appended and ``changes`` applied."""
        line = LogEntry(timestamp=now or utcnow(), action=action, message=message)
        return self.evolve(log=(*self.log, line), **changes)


def new_identity() -> str:
    return uuid.uuid4().hex


def create_entry(discovered: DiscoveredFile, *, now: datetime | None = None) -> LibraryEntry:
    """Build a fresh ``pending`` entry for a discovered file."""
    access = "write access OK" if discovered.handle is not None else "read-only mode"
    return LibraryEntry(
        identity=new_identity(),
        fingerprint=compute_fingerprint(
            discovered.relative_path, discovered.size, discovered.last_modified
        ),
        original_name=discovered.name,
        relative_path=discovered.relative_path,
        size=discovered.size,
        last_modified=discovered.last_modified,
        handle=discovered.handle,
        source=discovered,
        log=(
            LogEntry(
                timestamp=now or utcnow(),
                action="SCAN",
                message=f"File detected ({access}).",
            ),
        ),
    )


__all__ = [
    "ENTRY_STATUSES",
    "EntryStatus",
    "IssueMetadata",
    "LibraryEntry",
    "LogAction",
    "LogEntry",
    "create_entry",
    "format_timestamp",
    "new_identity",
    "utcnow",
]
