"""CLI tests for scanning, renaming, editing, and registry status."""

import asyncio
import json
import os
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from magindex.analysis import ExtractionError
from magindex.cli import cli
from magindex.library import IssueMetadata


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path / "home")
    env.pop("GEMINI_API_KEY", None)
    return env


class FakeExtractor:
    calls: list[str] = []

    def __init__(self, fail: set[str] | None = None) -> None:
        self.fail = fail or set()

    async def analyze(self, data: bytes, filename: str) -> IssueMetadata:
        FakeExtractor.calls.append(filename)
        await asyncio.sleep(0)
        if filename in self.fail:
            raise ExtractionError("Rate limit reached (429). Wait before retrying.")
        number = Path(filename).stem.split("_")[-1]
        return IssueMetadata(
            official_title=f"Gazeta {number}",
            magazine_edition=number,
            magazine_section="Gazeta do Reinado",
            rpg_system="T20",
            content_type="News",
            summary="News from the kingdom.",
            filename_slug=f"Gazeta_{number}",
        )


@pytest.fixture(autouse=True)
def _fake_extractor(monkeypatch: pytest.MonkeyPatch) -> None:
    FakeExtractor.calls = []
    monkeypatch.setattr("magindex.cli.build_extractor", lambda config: FakeExtractor())


def _library(tmp_path: Path, count: int = 3) -> Path:
    root = tmp_path / "library"
    root.mkdir()
    for index in range(1, count + 1):
        (root / f"scan_{index}.pdf").write_bytes(b"%PDF-1.4 issue")
    return root


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "Catalog and rename magazine PDFs" in result.output
    for command in ("scan", "rename", "edit", "status", "config"):
        assert command in result.output


def test_scan_json_reports_entries_and_saves_registry(tmp_path: Path) -> None:
    root = _library(tmp_path)
    runner = CliRunner()

    result = runner.invoke(cli, ["scan", str(root), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["counts"]["done"] == 3
    names = sorted(entry["currentName"] for entry in payload["entries"])
    assert names == ["DB_001_Gazeta_1.pdf", "DB_002_Gazeta_2.pdf", "DB_003_Gazeta_3.pdf"]

    registry_path = root / "magindex-registry.json"
    assert payload["registry"] == str(registry_path.resolve())
    stored = json.loads(registry_path.read_text(encoding="utf-8"))
    assert {record["status"] for record in stored} == {"done"}
    # Nothing is renamed without --rename.
    assert (root / "scan_1.pdf").exists()


def test_second_scan_resumes_without_analysis(tmp_path: Path) -> None:
    root = _library(tmp_path)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    first = runner.invoke(cli, ["scan", str(root), "--quiet"], env=env)
    assert first.exit_code == 0, first.output
    FakeExtractor.calls = []

    second = runner.invoke(cli, ["scan", str(root), "--json"], env=env)

    assert second.exit_code == 0, second.output
    assert FakeExtractor.calls == []
    payload = json.loads(second.output)
    assert payload["counts"]["done"] == 3
    for entry in payload["entries"]:
        assert entry["logs"][-1]["message"] == "Registry record recovered (fingerprint)."


def test_scan_with_rename_renames_in_place(tmp_path: Path) -> None:
    root = _library(tmp_path, count=2)
    runner = CliRunner()

    result = runner.invoke(
        cli, ["scan", str(root), "--rename", "--summary"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    assert (root / "DB_001_Gazeta_1.pdf").exists()
    assert (root / "DB_002_Gazeta_2.pdf").exists()
    assert "Scan summary" in result.output
    stored = json.loads((root / "magindex-registry.json").read_text(encoding="utf-8"))
    assert {record["status"] for record in stored} == {"renamed"}


def test_scan_read_only_rename_writes_offline_script(tmp_path: Path) -> None:
    root = _library(tmp_path, count=2)
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["scan", str(root), "--read-only", "--rename", "--script", "bat", "--quiet"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0, result.output
    script = root / "magindex-rename.bat"
    assert script.exists()
    assert 'ren "scan_1.pdf" "DB_001_Gazeta_1.pdf"' in script.read_text(encoding="utf-8")
    assert (root / "scan_1.pdf").exists()
    stored = json.loads((root / "magindex-registry.json").read_text(encoding="utf-8"))
    assert stored[0]["logs"][-1]["message"] == "Rename script (.bat) generated."


def test_scan_no_save_leaves_no_registry(tmp_path: Path) -> None:
    root = _library(tmp_path, count=1)
    runner = CliRunner()

    result = runner.invoke(
        cli, ["scan", str(root), "--no-save", "--quiet"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    assert not (root / "magindex-registry.json").exists()


def test_scan_retry_errors_runs_a_second_pass(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    root = _library(tmp_path, count=2)
    attempts: dict[str, int] = {}

    class FlakyExtractor(FakeExtractor):
        async def analyze(self, data: bytes, filename: str) -> IssueMetadata:
            attempts[filename] = attempts.get(filename, 0) + 1
            if filename == "scan_2.pdf" and attempts[filename] == 1:
                raise ExtractionError("Rate limit reached (429). Wait before retrying.")
            return await super().analyze(data, filename)

    monkeypatch.setattr("magindex.cli.build_extractor", lambda config: FlakyExtractor())
    runner = CliRunner()

    result = runner.invoke(
        cli, ["scan", str(root), "--retry-errors", "--quiet"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 0, result.output
    assert attempts == {"scan_1.pdf": 1, "scan_2.pdf": 2}
    stored = json.loads((root / "magindex-registry.json").read_text(encoding="utf-8"))
    assert {record["status"] for record in stored} == {"done"}


def test_scan_without_pdfs_reports_json_error(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    runner = CliRunner()

    result = runner.invoke(cli, ["scan", str(empty), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "discovery_error"


def test_scan_json_conflicts_with_quiet(tmp_path: Path) -> None:
    root = _library(tmp_path, count=1)
    runner = CliRunner()

    result = runner.invoke(
        cli, ["scan", str(root), "--json", "--quiet"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert "--json cannot be combined with --quiet" in payload["error"]["message"]


def test_scan_with_corrupt_registry_warns_and_keeps_the_file(tmp_path: Path) -> None:
    root = _library(tmp_path, count=1)
    registry_path = root / "magindex-registry.json"
    registry_path.write_text('{"not": "a list"}', encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(cli, ["scan", str(root)], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    assert "Ignoring registry" in result.output
    assert FakeExtractor.calls == ["scan_1.pdf"]
    assert registry_path.read_text(encoding="utf-8") == '{"not": "a list"}'


def test_scan_json_with_corrupt_registry_reports_no_export(tmp_path: Path) -> None:
    root = _library(tmp_path, count=2)
    (root / "magindex-registry.json").write_text("[1, 2]", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(cli, ["scan", str(root), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["registry"] is None
    assert payload["counts"]["done"] == 2


def test_edit_then_rename(tmp_path: Path) -> None:
    root = _library(tmp_path, count=2)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    assert runner.invoke(cli, ["scan", str(root), "--quiet"], env=env).exit_code == 0

    edit = runner.invoke(cli, ["edit", str(root), "scan_1.pdf", "DB_001_Custom.pdf"], env=env)
    rename = runner.invoke(cli, ["rename", str(root), "--quiet"], env=env)

    assert edit.exit_code == 0, edit.output
    assert "DB_001_Custom.pdf" in edit.output
    assert rename.exit_code == 0, rename.output
    assert (root / "DB_001_Custom.pdf").exists()
    assert (root / "DB_002_Gazeta_2.pdf").exists()
    stored = json.loads((root / "magindex-registry.json").read_text(encoding="utf-8"))
    custom = next(record for record in stored if record["currentName"] == "DB_001_Custom.pdf")
    assert custom["isManualOverride"] is True
    assert custom["status"] == "renamed"


def test_edit_unknown_file_fails(tmp_path: Path) -> None:
    root = _library(tmp_path, count=1)
    runner = CliRunner()

    result = runner.invoke(
        cli, ["edit", str(root), "missing.pdf", "x.pdf"], env=_env_with_home(tmp_path)
    )

    assert result.exit_code != 0
    assert "No entry matches" in result.output


def test_rename_requires_registry(tmp_path: Path) -> None:
    root = _library(tmp_path, count=1)
    runner = CliRunner()

    result = runner.invoke(cli, ["rename", str(root)], env=_env_with_home(tmp_path))

    assert result.exit_code != 0
    assert "No registry found" in result.output


def test_status_counts_records(tmp_path: Path) -> None:
    root = _library(tmp_path, count=3)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    assert runner.invoke(cli, ["scan", str(root), "--quiet"], env=env).exit_code == 0

    result = runner.invoke(
        cli, ["status", str(root / "magindex-registry.json"), "--json"], env=env
    )

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["counts"]["done"] == 3
    assert payload["counts"]["renamed"] == 0


def test_rename_only_renames_the_selected_file(tmp_path: Path) -> None:
    root = _library(tmp_path, count=2)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    assert runner.invoke(cli, ["scan", str(root), "--quiet"], env=env).exit_code == 0

    result = runner.invoke(cli, ["rename", str(root), "--only", "scan_2.pdf", "--json"], env=env)

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["rename"]["succeeded"] == 1
    assert payload["rename"]["failed"] == 0
    assert (root / "DB_002_Gazeta_2.pdf").exists()
    assert (root / "scan_1.pdf").exists()
    stored = json.loads((root / "magindex-registry.json").read_text(encoding="utf-8"))
    statuses = {record["originalPath"]: record["status"] for record in stored}
    assert statuses == {"scan_1.pdf": "done", "scan_2.pdf": "renamed"}


def test_rename_only_unknown_file_fails(tmp_path: Path) -> None:
    root = _library(tmp_path, count=1)
    runner = CliRunner()
    env = _env_with_home(tmp_path)
    assert runner.invoke(cli, ["scan", str(root), "--quiet"], env=env).exit_code == 0

    result = runner.invoke(cli, ["rename", str(root), "--only", "missing.pdf"], env=env)

    assert result.exit_code != 0
    assert "No entry matches 'missing.pdf'" in result.output
