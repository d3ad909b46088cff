"""Configuration management for magindex.

Settings live in ``~/.magindex/config.yaml``. Values are layered as
defaults < file < ``MAGINDEX__SECTION__KEY`` environment variables < CLI
overrides, then validated by :class:`MagindexConfig`.
"""

from __future__ import annotations

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping

import yaml

from .exceptions import ConfigError, ConfigFileError, ConfigValueError
from .models import MagindexConfig
from .resolver import (
    ENV_PREFIX,
    ENV_SEPARATOR,
    expand_dotted,
    flatten_for_env,
    merge_overrides,
    resolve_with_precedence,
)

DEFAULT_CONFIG_PATH = Path("~/.magindex/config.yaml")
CONFIG_HEADER = (
    "# magindex configuration file\n"
    "# Manage with `magindex config set` or `magindex config edit`.\n"
)


def env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``MAGINDEX__*`` variables as a nested override mapping.

    Values are parsed as YAML scalars, so ``"3"`` becomes ``3`` and ``"true"``
    becomes ``True``; unparsable values are kept verbatim.
    """
    dotted: dict[str, Any] = {}
    for name, raw in env.items():
        if not name.startswith(ENV_PREFIX):
            continue
        parts = [part.lower() for part in name[len(ENV_PREFIX) :].split(ENV_SEPARATOR) if part]
        if not parts:
            continue
        try:
            dotted[".".join(parts)] = yaml.safe_load(raw)
        except yaml.YAMLError:
            dotted[".".join(parts)] = raw
    return expand_dotted(dotted, source="environment")


class ConfigManager:
    """Read, layer, and persist the magindex configuration file.

    Args:
        config_path: File location; defaults to ``~/.magindex/config.yaml``.
        env: Environment used for overrides; defaults to ``os.environ``.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._path = Path(config_path or DEFAULT_CONFIG_PATH).expanduser()
        self._env = os.environ if env is None else env

    @property
    def config_path(self) -> Path:
        return self._path

    def load(
        self,
        *,
        cli_overrides: Mapping[str, Any] | None = None,
        include_env: bool = True,
        ensure_file: bool = True,
    ) -> MagindexConfig:
        """Return the effective configuration.

        Raises:
            ConfigError: If the file is unreadable or any layer holds invalid values.
        """
        if ensure_file:
            self.ensure_exists()
        return resolve_with_precedence(
            defaults=MagindexConfig(),
            file_overrides=self.load_file_overrides(),
            env_overrides=env_overrides(self._env) if include_env else None,
            cli_overrides=cli_overrides,
        )

    def ensure_exists(self) -> Path:
        """Write a file with default settings unless one is already present."""
        if not self._path.exists():
            self.save(MagindexConfig())
        return self._path

    def read_text(self) -> str:
        if not self._path.exists():
            return ""
        return self._path.read_text(encoding="utf-8")

    def load_file_overrides(self) -> dict[str, Any]:
        """Return the raw mapping stored in the configuration file.

        Raises:
            ConfigFileError: If the file is not valid YAML or not a mapping.
        """
        text = self.read_text()
        try:
            data = yaml.safe_load(text) if text else None
        except yaml.YAMLError as exc:
            raise ConfigFileError(f"Failed to parse {self._path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigFileError(f"{self._path} must contain a mapping at the top level.")
        return data

    def save(self, config: MagindexConfig | Mapping[str, Any]) -> None:
        """Write ``config`` to disk behind the generated header."""
        data = (
            config.model_dump(mode="python")
            if isinstance(config, MagindexConfig)
            else dict(config)
        )
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        body = yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            f"{CONFIG_HEADER}# Last updated: {stamp}\n{body}", encoding="utf-8"
        )


__all__ = [
    "ConfigError",
    "ConfigFileError",
    "ConfigManager",
    "ConfigValueError",
    "DEFAULT_CONFIG_PATH",
    "MagindexConfig",
    "env_overrides",
    "flatten_for_env",
    "merge_overrides",
    "resolve_with_precedence",
]
