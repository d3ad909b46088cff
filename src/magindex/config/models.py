"""Configuration models describing magindex settings."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MagindexBaseModel(BaseModel):
    """Shared configuration for magindex Pydantic settings models."""

    model_config = ConfigDict(extra="forbid")


class LLMSettings(MagindexBaseModel):
    """Settings for the metadata extraction service.

    Attributes:
        provider: Extraction backend; only "gemini" is supported.
        model: Gemini model used for `generateContent` calls.
        api_key: Optional credential; falls back to ``GEMINI_API_KEY`` when unset.
        api_base_url: Base URL of the generative language REST API.
        temperature: Sampling temperature; kept low so metadata stays deterministic.
        timeout_seconds: Per-request timeout applied to HTTP calls.
    """

    provider: str = "gemini"
    model: str = "gemini-2.0-flash"
    api_key: Optional[str] = None
    api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    temperature: float = 0.1
    timeout_seconds: float = 120.0


class ProcessingOptions(MagindexBaseModel):
    """Options governing discovery and analysis scheduling.

    Attributes:
        concurrency: Maximum number of entries analyzed at the same time.
        recurse_directories: Descend into sub-folders of a selected directory.
        process_hidden_files: Include dot-files and files inside dot-folders.
        follow_symlinks: Treat symlinked PDFs as regular files.
    """

    concurrency: int = Field(default=3, ge=1)
    recurse_directories: bool = True
    process_hidden_files: bool = False
    follow_symlinks: bool = False


class NamingOptions(MagindexBaseModel):
    """Canonical filename settings.

    Attributes:
        prefix: Leading token of every canonical filename.
        edition_width: Zero-padded width of the edition number.
    """

    prefix: str = "DB"
    edition_width: int = Field(default=3, ge=1)


class RegistrySettings(MagindexBaseModel):
    """Where the CLI keeps the exported registry by default."""

    filename: str = "magindex-registry.json"


class LoggingSettings(MagindexBaseModel):
    """Level of the `magindex` process logger (DEBUG, INFO, WARNING, ...)."""

    level: str = "WARNING"


class CLIOptions(MagindexBaseModel):
    """Output defaults applied when `--quiet` or `--summary` are not passed.

    Attributes:
        quiet_default: Print errors only.
        summary_default: Print summary lines only.
    """

    quiet_default: bool = False
    summary_default: bool = False


class MagindexConfig(MagindexBaseModel):
    """Top-level configuration struct for magindex."""

    llm: LLMSettings = Field(default_factory=LLMSettings)
    processing: ProcessingOptions = Field(default_factory=ProcessingOptions)
    naming: NamingOptions = Field(default_factory=NamingOptions)
    registry: RegistrySettings = Field(default_factory=RegistrySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "MagindexBaseModel",
    "LLMSettings",
    "ProcessingOptions",
    "NamingOptions",
    "RegistrySettings",
    "LoggingSettings",
    "CLIOptions",
    "MagindexConfig",
]
