"""Offline rename scripts for catalogs without write access."""

from __future__ import annotations

import posixpath
import shlex
from typing import Callable, Iterable

from magindex.library.models import LibraryEntry

SCRIPT_FORMATS = ("bat", "sh", "py")

SCRIPT_FILENAMES = {
    "bat": "magindex-rename.bat",
    "sh": "magindex-rename.sh",
    "py": "magindex-rename.py",
}


def rename_candidates(entries: Iterable[LibraryEntry]) -> list[LibraryEntry]:
    """Return entries that an offline script should rename, in order."""
    return [entry for entry in entries if entry.needs_rename]


def _target_path(relative_path: str, name: str) -> str:
    return posixpath.join(posixpath.dirname(relative_path), name)


def _bat_quote(value: str) -> str:
    return value.replace("/", "\\").replace("%", "%%")


def generate_rename_bat(entries: Iterable[LibraryEntry]) -> str:
    """Build a Windows batch script, meant to run from the scanned root."""
    lines = [
        "@echo off",
        "chcp 65001 > nul",
        "echo ==========================================",
        "echo      Renaming magazine files",
        "echo ==========================================",
        "echo.",
    ]
    candidates = rename_candidates(entries)
    for entry in candidates:
        source = _bat_quote(entry.relative_path)
        target = _bat_quote(entry.suggested_name or "")
        lines.extend(
            [
                f'if exist "{source}" (',
                f'    ren "{source}" "{target}"',
                f"    echo [OK] {source} -^> {target}",
                ") else (",
                f"    echo [ERROR] File not found: {source}",
                ")",
            ]
        )
    lines.extend(["echo.", f"echo Done. {len(candidates)} file(s) processed.", "pause"])
    return "\r\n".join(lines) + "\r\n"


def generate_rename_sh(entries: Iterable[LibraryEntry]) -> str:
    """Build a POSIX shell script, meant to run from the scanned root."""
    lines = ["#!/bin/sh", 'echo "Renaming magazine files..."']
    candidates = rename_candidates(entries)
    for entry in candidates:
        source = shlex.quote(entry.relative_path)
        target = shlex.quote(_target_path(entry.relative_path, entry.suggested_name or ""))
        lines.extend(
            [
                f"if [ -e {source} ] && [ ! -e {target} ]; then",
                f"    mv {source} {target} && echo \"[OK] \"{source}\" -> \"{target}",
                "else",
                f"    echo \"[ERROR] Cannot rename \"{source}",
                "fi",
            ]
        )
    lines.append(f'echo "Done. {len(candidates)} file(s) processed."')
    return "\n".join(lines) + "\n"


_PYTHON_SCRIPT = '''\
"""Rename magazine PDFs from an exported magindex registry.

Usage: python magindex-rename.py [REGISTRY.json]

Run it from the folder that was scanned. Without an argument the first
.json file in the current directory is used.
"""

import json
import os
import sys


def find_registry(argv):
    if len(argv) > 1:
        return argv[1]
    candidates = sorted(name for name in os.listdir(".") if name.endswith(".json"))
    return candidates[0] if candidates else None


def locate(original_path):
    candidates = [original_path, os.path.basename(original_path)]
    if "/" in original_path:
        candidates.append(original_path.split("/", 1)[1])
    for candidate in candidates:
        if candidate and os.path.exists(candidate):
            return candidate
    return None


def main(argv):
    registry = find_registry(argv)
    if registry is None:
        print("ERROR: no exported registry (.json) found in this folder.")
        return 1
    print(f"Reading registry: {registry}")
    with open(registry, encoding="utf-8") as handle:
        records = json.load(handle)

    renamed = skipped = failed = 0
    for record in records:
        original_path = record.get("originalPath") or ""
        new_name = record.get("currentName") or ""
        if not original_path or not new_name:
            continue
        found = locate(original_path)
        if found is None:
            if os.path.exists(new_name):
                skipped += 1
            else:
                print(f"[NOT FOUND] {original_path}")
                failed += 1
            continue
        target = os.path.join(os.path.dirname(found), new_name)
        if os.path.normpath(found) == os.path.normpath(target):
            continue
        if os.path.exists(target):
            print(f"[SKIP] Destination already exists: {new_name}")
            skipped += 1
            continue
        try:
            os.rename(found, target)
        except OSError as exc:
            print(f"[ERROR] Could not rename {found}: {exc}")
            failed += 1
            continue
        print(f"[OK] {os.path.basename(found)} -> {new_name}")
        renamed += 1

    print(f"Done. Renamed: {renamed}. Skipped: {skipped}. Errors: {failed}.")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
'''


def generate_rename_python() -> str:
    """Return a standalone script that applies names from an exported registry."""
    return _PYTHON_SCRIPT


def generate_script(fmt: str, entries: Iterable[LibraryEntry]) -> str:
    """Build the offline rename script for ``fmt``.

    Raises:
        ValueError: If ``fmt`` is not one of :data:`SCRIPT_FORMATS`.
    """
    builders: dict[str, Callable[[Iterable[LibraryEntry]], str]] = {
        "bat": generate_rename_bat,
        "sh": generate_rename_sh,
        "py": lambda _entries: generate_rename_python(),
    }
    try:
        builder = builders[fmt]
    except KeyError as exc:
        raise ValueError(f"Unknown script format: {fmt!r}") from exc
    return builder(entries)


__all__ = [
    "SCRIPT_FILENAMES",
    "SCRIPT_FORMATS",
    "generate_rename_bat",
    "generate_rename_python",
    "generate_rename_sh",
    "generate_script",
    "rename_candidates",
]
