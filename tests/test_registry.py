"""Tests for registry export, import, and merge."""

import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from magindex.discovery import DiscoveredFile, FileHandle
from magindex.library import IssueMetadata, LibraryEntry, create_entry
from magindex.library import lifecycle
from magindex.registry import (
    Registry,
    RegistryError,
    dump_registry,
    export_records,
    load_registry,
    merge_registry,
    parse_registry,
    write_registry,
)

NOW = datetime(2025, 3, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)

METADATA = IssueMetadata(
    official_title="Novos Talentos",
    magazine_edition="150",
    magazine_section="Toolbox",
    rpg_system="T20",
    content_type="Rules",
    summary="New talents.",
    filename_slug="T20_Novos_Talentos",
)


def _entry(
    tmp_path: Path, name: str = "issue.pdf", mtime: int = 1_700_000_000_000
) -> LibraryEntry:
    path = tmp_path / name
    path.write_bytes(b"%PDF-1.4")
    found = DiscoveredFile(
        path=path,
        relative_path=name,
        size=8,
        last_modified=mtime,
        handle=FileHandle(path),
    )
    return create_entry(found, now=NOW)


def _analyzed(entry: LibraryEntry, name: str = "DB_150_T20_Novos_Talentos.pdf") -> LibraryEntry:
    return lifecycle.complete_analysis(
        lifecycle.begin_analysis(entry), METADATA, name, "DB 150", now=NOW
    )


def _round_trip(entries: list[LibraryEntry]) -> Registry:
    return parse_registry(json.loads(dump_registry(export_records(entries, now=NOW))))


def test_export_uses_camel_case_wire_format(tmp_path: Path) -> None:
    entry = _analyzed(_entry(tmp_path))

    payload = json.loads(dump_registry(export_records([entry], now=NOW)))

    record = payload[0]
    assert set(record) == {
        "fingerprint",
        "originalPath",
        "currentName",
        "fileSize",
        "lastModified",
        "metadata",
        "status",
        "isManualOverride",
        "logs",
        "lastUpdated",
    }
    assert record["currentName"] == "DB_150_T20_Novos_Talentos.pdf"
    assert record["lastUpdated"] == "2025-03-01T12:30:45.123Z"
    assert record["logs"][0] == {
        "timestamp": "2025-03-01T12:30:45.123Z",
        "action": "SCAN",
        "message": "File detected (write access OK).",
    }
    assert record["metadata"]["filename_slug"] == "T20_Novos_Talentos"


def test_unanalyzed_entry_exports_null_current_name(tmp_path: Path) -> None:
    payload = json.loads(dump_registry(export_records([_entry(tmp_path)], now=NOW)))

    assert payload[0]["currentName"] is None
    assert payload[0]["metadata"] is None
    assert payload[0]["status"] == "pending"


def test_fingerprint_merge_restores_state_and_appends_one_restore(tmp_path: Path) -> None:
    analyzed = _analyzed(_entry(tmp_path))
    registry = _round_trip([analyzed])
    fresh = _entry(tmp_path)

    [merged] = merge_registry([fresh], registry, now=NOW)

    assert merged.identity == fresh.identity
    assert merged.status == "done"
    assert merged.metadata == METADATA
    assert merged.suggested_name == analyzed.suggested_name
    assert len(merged.log) == len(analyzed.log) + 1
    assert merged.log[-1].action == "RESTORE"
    assert merged.log[-1].message == "Registry record recovered (fingerprint)."


def test_fingerprint_merge_keeps_renamed_and_manual_override(tmp_path: Path) -> None:
    edited = lifecycle.manual_edit(_entry(tmp_path), "DB_001_Custom.pdf", now=NOW)
    renamed = lifecycle.mark_renamed(edited, "Renamed to DB_001_Custom.pdf", now=NOW)
    registry = _round_trip([renamed])

    [merged] = merge_registry([_entry(tmp_path)], registry, now=NOW)

    assert merged.status == "renamed"
    assert merged.manual_override
    assert not lifecycle.is_admissible(merged)


def test_persisted_error_maps_to_done(tmp_path: Path) -> None:
    failed = lifecycle.fail_analysis(lifecycle.begin_analysis(_entry(tmp_path)), "boom", now=NOW)
    registry = _round_trip([failed])

    [merged] = merge_registry([_entry(tmp_path)], registry, now=NOW)

    assert merged.status == "done"
    assert merged.last_error is None
    assert merged.suggested_name is None
    assert not merged.needs_rename


def test_filename_fallback_forces_renamed(tmp_path: Path) -> None:
    analyzed = _analyzed(_entry(tmp_path, "scan.pdf"))
    registry = _round_trip([analyzed])
    # After an in-place rename the file shows up under its new name and path.
    moved = _entry(tmp_path, "DB_150_T20_Novos_Talentos.pdf", mtime=1_800_000_000_000)

    [merged] = merge_registry([moved], registry, now=NOW)

    assert merged.status == "renamed"
    assert merged.log[-1].message == "Registry record recovered (filename)."


def test_unmatched_entry_is_returned_unchanged(tmp_path: Path) -> None:
    registry = _round_trip([_analyzed(_entry(tmp_path, "a.pdf"))])
    other = _entry(tmp_path, "b.pdf")

    [merged] = merge_registry([other], registry, now=NOW)

    assert merged is other


def test_merge_is_pure(tmp_path: Path) -> None:
    registry = _round_trip([_analyzed(_entry(tmp_path))])
    before = registry.model_dump()
    fresh = [_entry(tmp_path)]

    first = merge_registry(fresh, registry, now=NOW)
    second = merge_registry(fresh, registry, now=NOW)

    assert first == second
    assert registry.model_dump() == before


def test_import_skips_records_without_fingerprint() -> None:
    registry = parse_registry(
        [
            {"originalPath": "a.pdf", "currentName": "DB_001_A.pdf"},
            {"fingerprint": "b.pdf::1::2", "originalPath": "b.pdf", "status": "done"},
        ]
    )

    assert len(registry) == 1
    assert registry.by_fingerprint("b.pdf::1::2") is not None


@pytest.mark.parametrize(
    "document",
    [
        {"fingerprint": "a"},
        [1, 2],
        [{"fingerprint": "a::1::2", "logs": [{"timestamp": "yesterday"}]}],
        [{"fingerprint": "a::1::2", "metadata": {"official_title": "only"}}],
    ],
)
def test_import_is_all_or_nothing(document: object) -> None:
    with pytest.raises(RegistryError):
        parse_registry(document)


def test_load_registry_rejects_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "registry.json"
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(RegistryError):
        load_registry(path)


def test_write_and_load_registry(tmp_path: Path) -> None:
    entries = [_analyzed(_entry(tmp_path, "a.pdf")), _entry(tmp_path, "b.pdf")]
    path = tmp_path / "out" / "registry.json"

    written = write_registry(path, entries, now=NOW)
    registry = load_registry(path)

    assert written == 2
    assert len(registry) == 2
    assert registry.by_current_name("DB_150_T20_Novos_Talentos.pdf") is not None
