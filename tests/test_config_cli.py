"""CLI tests for configuration commands."""

import os
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from magindex.cli import cli
from magindex.config import ConfigManager


def _env_with_home(tmp_path: Path) -> dict[str, Any]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path)
    return env


def _config_path(tmp_path: Path) -> Path:
    return tmp_path / ".magindex" / "config.yaml"


def test_config_view_creates_and_displays_config(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ["config", "view", "--no-env"], env=_env_with_home(tmp_path))

    assert result.exit_code == 0
    assert "llm:" in result.output
    assert "concurrency: 3" in result.output
    assert _config_path(tmp_path).exists()


def test_config_set_updates_value_and_writes_diff(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(
        cli, ["config", "set", "processing.concurrency", "--value", "5"], env=env
    )

    assert result.exit_code == 0
    assert "Updated processing.concurrency" in result.output

    manager = ConfigManager(config_path=_config_path(tmp_path), env={})
    config = manager.load(include_env=False)
    assert config.processing.concurrency == 5


def test_config_set_rejects_invalid_value(tmp_path: Path) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    result = runner.invoke(
        cli, ["config", "set", "processing.concurrency", "--value", "0"], env=env
    )

    assert result.exit_code != 0
    manager = ConfigManager(config_path=_config_path(tmp_path), env={})
    assert manager.load(include_env=False).processing.concurrency == 3


def test_config_edit_applies_changes(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    runner = CliRunner()
    env = _env_with_home(tmp_path)

    manager = ConfigManager(config_path=_config_path(tmp_path), env={})
    manager.ensure_exists()

    def _mock_edit(text: str, **_: Any) -> str:
        return text.replace("temperature: 0.1", "temperature: 0.55")

    monkeypatch.setattr("magindex.cli.click.edit", _mock_edit)

    result = runner.invoke(cli, ["config", "edit"], env=env)

    assert result.exit_code == 0
    assert "updated" in result.output.lower()

    config = manager.load(include_env=False)
    assert config.llm.temperature == pytest.approx(0.55)
