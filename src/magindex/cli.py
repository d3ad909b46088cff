"""Command line interface for magindex."""

from __future__ import annotations

import asyncio
import difflib
import os
from contextlib import nullcontext
from pathlib import Path
from typing import Any, NamedTuple, NoReturn, Sequence

import click
import yaml
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from magindex.analysis import GeminiExtractor, MetadataExtractor
from magindex.config import (
    ConfigError,
    ConfigManager,
    MagindexConfig,
    expand_dotted,
    merge_overrides,
    resolve_with_precedence,
)
from magindex.discovery import DiscoveryError
from magindex.library import ENTRY_STATUSES, LibraryEntry, LibraryError
from magindex.logging_setup import configure_logging
from magindex.registry import RegistryError, load_registry
from magindex.rename import SCRIPT_FORMATS, RenameBatchResult, RenameError, RenameOutcome
from magindex.session import CatalogSession

console = Console()

STATUS_STYLES = {
    "pending": "dim",
    "analyzing": "cyan",
    "done": "green",
    "renamed": "bold green",
    "error": "red",
    "skipped": "yellow",
}

# Domain errors surfaced by the catalog commands, with their JSON error codes.
ERROR_CODES: tuple[tuple[type[Exception], str], ...] = (
    (ConfigError, "config_error"),
    (DiscoveryError, "discovery_error"),
    (RegistryError, "registry_error"),
    (RenameError, "rename_error"),
)


class OutputModes(NamedTuple):
    """How much a command prints."""

    quiet: bool = False
    summary_only: bool = False
    json: bool = False


def _fail(
    message: str, *, code: str, modes: OutputModes, cause: Exception | None = None
) -> NoReturn:
    """Stop the command with ``message``.

    In JSON mode the error is printed as ``{"error": {"code", "message"}}`` and
    the process exits with status 1; otherwise a :class:`click.ClickException`
    is raised.
    """
    if modes.json:
        console.print_json(data={"error": {"code": code, "message": message}})
        raise SystemExit(1)
    if isinstance(cause, click.ClickException):
        raise cause
    raise click.ClickException(message) from cause


def _fail_from(exc: Exception, modes: OutputModes) -> NoReturn:
    if isinstance(exc, click.ClickException):
        _fail(exc.message, code="cli_error", modes=modes, cause=exc)
    for error_type, code in ERROR_CODES:
        if isinstance(exc, error_type):
            _fail(str(exc), code=code, modes=modes, cause=exc)
    raise exc


def _emit(message: Any, modes: OutputModes, *, kind: str = "detail") -> None:
    """Print ``message`` unless the output modes silence messages of ``kind``.

    ``kind`` is one of ``detail``, ``summary``, ``warning`` or ``error``. Quiet
    mode only lets errors through; summary mode drops details.
    """
    if modes.json:
        return
    if modes.quiet and kind != "error":
        return
    if modes.summary_only and kind == "detail":
        return
    console.print(message)


def _summary_line(command: str, target: Path | str, metrics: dict[str, Any]) -> str:
    rendered = ", ".join(f"{name}={value}" for name, value in metrics.items())
    return f"[green]{command} summary for {target}: {rendered}.[/green]"


def _output_modes(
    ctx: click.Context,
    config: MagindexConfig,
    *,
    quiet: bool,
    summary_mode: bool,
    json_output: bool,
) -> OutputModes:
    """Merge the output flags with the ``cli`` defaults from configuration.

    Raises:
        click.ClickException: If the flags contradict each other.
    """

    def given(name: str) -> bool:
        return ctx.get_parameter_source(name) == ParameterSource.COMMANDLINE

    if json_output:
        if given("quiet") and quiet:
            raise click.ClickException("--json cannot be combined with --quiet.")
        if given("summary_mode") and summary_mode:
            raise click.ClickException("--json cannot be combined with --summary.")
        return OutputModes(json=True)

    modes = OutputModes(
        quiet=quiet if given("quiet") else config.cli.quiet_default,
        summary_only=summary_mode if given("summary_mode") else config.cli.summary_default,
    )
    if modes.quiet and modes.summary_only:
        raise click.ClickException(
            "Quiet and summary output are mutually exclusive; check `cli.*` settings and flags."
        )
    return modes


def _load_config(cli_overrides: dict[str, Any] | None = None) -> MagindexConfig:
    manager = ConfigManager()
    config = manager.load(cli_overrides=cli_overrides)
    configure_logging(config.logging.level)
    return config


def build_extractor(config: MagindexConfig) -> MetadataExtractor:
    """Create the metadata extractor described by ``config``.

    Raises:
        ConfigError: If the provider is unsupported or credentials are missing.
    """
    return GeminiExtractor.from_settings(config.llm)


def _base_directory(paths: Sequence[Path]) -> Path:
    first = paths[0]
    return first if first.is_dir() else first.parent


def _registry_location(
    option: Path | None, paths: Sequence[Path], config: MagindexConfig
) -> Path:
    if option is not None:
        return option.expanduser()
    return _base_directory(paths) / config.registry.filename


def _default_script_format() -> str:
    return "bat" if os.name == "nt" else "sh"


def _last_event(entry: LibraryEntry) -> str:
    if entry.last_error:
        return entry.last_error
    return entry.log[-1].message if entry.log else ""


def _styled(status: str) -> str:
    style = STATUS_STYLES.get(status)
    return f"[{style}]{status}[/{style}]" if style else status


def _entries_table(entries: Sequence[LibraryEntry]) -> Table:
    table = Table(title="Catalog")
    table.add_column("File", overflow="fold")
    table.add_column("Status")
    table.add_column("Suggested name", overflow="fold")
    table.add_column("Last event", overflow="fold")
    for entry in entries:
        table.add_row(
            entry.relative_path,
            _styled(entry.status),
            entry.suggested_name or "-",
            _last_event(entry),
        )
    return table


def _rename_payload(result: RenameBatchResult | None) -> dict[str, Any] | None:
    if result is None:
        return None
    return {
        "offline": result.offline,
        "succeeded": result.succeeded,
        "failed": result.failed,
        "outcomes": [
            {"identity": outcome.identity, "ok": outcome.ok, "message": outcome.message}
            for outcome in result.outcomes
        ],
    }


def _write_offline_script(
    session: CatalogSession, fmt: str, directory: Path
) -> tuple[Path, int]:
    filename, content = session.offline_script(fmt)
    target = directory / filename
    target.write_text(content, encoding="utf-8", newline="")
    if fmt == "sh":
        target.chmod(0o755)
    return target, session.mark_offline_renamed(f".{fmt}")


def _apply_renames(
    session: CatalogSession, *, script: str | None, script_dir: Path, modes: OutputModes
) -> tuple[RenameBatchResult, Path | None]:
    """Rename in place, falling back to an offline script without write access."""
    result = asyncio.run(session.rename_all())
    script_path: Path | None = None
    if result.offline:
        script_path, marked = _write_offline_script(
            session, script or _default_script_format(), script_dir
        )
        _emit(
            f"[yellow]No write access; wrote {script_path} covering {marked} file(s).[/yellow]",
            modes,
            kind="warning",
        )
    for outcome in result.outcomes:
        if not outcome.ok:
            _emit(f"[red]{outcome.message}[/red]", modes, kind="error")
    return result, script_path


def _rename_selected(
    session: CatalogSession, names: Sequence[str], modes: OutputModes
) -> RenameBatchResult:
    """Rename the entries matching ``names`` one by one."""
    identities: list[str] = []
    for name in names:
        entry = session.store.find(name)
        if entry is None:
            raise click.ClickException(f"No entry matches {name!r}.")
        if entry.identity not in identities:
            identities.append(entry.identity)

    result = RenameBatchResult()
    for identity in identities:
        try:
            outcome = asyncio.run(session.rename(identity))
        except RenameError as exc:
            outcome = RenameOutcome(identity=identity, ok=False, message=str(exc))
        if not outcome.ok:
            _emit(f"[red]{outcome.message}[/red]", modes, kind="error")
        result.outcomes.append(outcome)
    return result


def _registry_option(help_text: str) -> Any:
    return click.option(
        "--registry",
        "registry_file",
        type=click.Path(dir_okay=False, path_type=Path),
        help=help_text,
    )


def _output_options(json_help: str) -> Any:
    def decorate(func: Any) -> Any:
        func = click.option("--quiet", is_flag=True, help="Print errors only.")(func)
        func = click.option(
            "--summary", "summary_mode", is_flag=True, help="Print summary lines only."
        )(func)
        return click.option("--json", "json_output", is_flag=True, help=json_help)(func)

    return decorate


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(package_name="magindex")
def cli() -> None:
    """Catalog and rename magazine PDFs using AI-extracted metadata."""


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@_registry_option("Registry file to resume from and export to.")
@click.option("--no-save", is_flag=True, help="Do not export the registry at the end.")
@click.option("--read-only", is_flag=True, help="Never rename files in place.")
@click.option("--concurrency", type=click.IntRange(min=1), help="Analyses run at the same time.")
@click.option("--retry-errors", is_flag=True, help="Retry failed analyses once more.")
@click.option("--rename", "rename_files", is_flag=True, help="Rename analyzed files afterwards.")
@click.option(
    "--script",
    type=click.Choice(SCRIPT_FORMATS),
    help="Write an offline rename script in this format instead of renaming in place.",
)
@_output_options("Print the catalog as JSON.")
@click.pass_context
def scan(
    ctx: click.Context,
    paths: tuple[Path, ...],
    registry_file: Path | None,
    no_save: bool,
    read_only: bool,
    concurrency: int | None,
    retry_errors: bool,
    rename_files: bool,
    script: str | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Analyze the PDFs under PATHS and export the registry.

    A registry left by an earlier run is imported first, so files that were
    already analyzed are restored instead of being sent to the service again.
    """
    modes = OutputModes(json=json_output)
    try:
        overrides = {"processing.concurrency": concurrency} if concurrency else None
        config = _load_config(overrides)
        modes = _output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )

        selections = [path.expanduser().resolve() for path in paths]
        registry_path = _registry_location(registry_file, selections, config)
        session = CatalogSession(config)
        registry_unreadable = False
        if registry_path.exists():
            try:
                session.load_registry(registry_path)
            except RegistryError as exc:
                registry_unreadable = True
                _emit(
                    f"[yellow]Ignoring registry: {escape(str(exc))}[/yellow]",
                    modes,
                    kind="warning",
                )
            else:
                _emit(
                    f"Loaded registry {registry_path} ({len(session.registry)} record(s)).", modes
                )

        session.discover(selections, read_only=read_only)

        if session.has_admissible():
            session.extractor = build_extractor(config)
            spinner = (
                nullcontext()
                if modes.json or modes.quiet
                else console.status("Analyzing...", spinner="dots")
            )
            with spinner:
                asyncio.run(session.analyze())
                if retry_errors and session.retry_errors():
                    asyncio.run(session.analyze())

        rename_result: RenameBatchResult | None = None
        script_path: Path | None = None
        script_dir = _base_directory(selections)
        if rename_files:
            rename_result, script_path = _apply_renames(
                session, script=script, script_dir=script_dir, modes=modes
            )
        elif script:
            script_path, _ = _write_offline_script(session, script, script_dir)
            _emit(f"Wrote offline rename script {script_path}.", modes)

        exported = not (no_save or registry_unreadable)
        saved = session.save_registry(registry_path) if exported else 0
        if registry_unreadable and not no_save:
            _emit(
                f"[yellow]Registry not exported; {registry_path} was left untouched.[/yellow]",
                modes,
                kind="warning",
            )
    except (click.ClickException, ConfigError, DiscoveryError, RegistryError) as exc:
        _fail_from(exc, modes)

    counts = session.store.counts()
    if modes.json:
        console.print_json(
            data={
                "registry": str(registry_path) if exported else None,
                "counts": counts,
                "entries": [
                    record.model_dump(mode="json", by_alias=True)
                    for record in session.export_records()
                ],
                "rename": _rename_payload(rename_result),
                "script": str(script_path) if script_path else None,
            }
        )
        return

    _emit(_entries_table(session.entries), modes)
    metrics: dict[str, Any] = {"files": len(session.store), **counts}
    if rename_result is not None:
        metrics["renames_ok"] = rename_result.succeeded
        metrics["renames_failed"] = rename_result.failed
    if saved:
        metrics["saved"] = saved
    target = ", ".join(str(path) for path in selections)
    _emit(_summary_line("Scan", target, metrics), modes, kind="summary")


@cli.command()
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True, path_type=Path))
@_registry_option("Registry file holding the suggested names.")
@click.option("--read-only", is_flag=True, help="Only write an offline rename script.")
@click.option(
    "--only",
    "only_names",
    multiple=True,
    metavar="NAME",
    help="Rename only this file (path, filename, or suggested name). Repeatable.",
)
@click.option(
    "--script",
    type=click.Choice(SCRIPT_FORMATS),
    help="Offline script format used when files cannot be renamed in place.",
)
@_output_options("Print the rename outcomes as JSON.")
@click.pass_context
def rename(
    ctx: click.Context,
    paths: tuple[Path, ...],
    registry_file: Path | None,
    only_names: tuple[str, ...],
    read_only: bool,
    script: str | None,
    json_output: bool,
    summary_mode: bool,
    quiet: bool,
) -> None:
    """Apply the suggested names recorded in the registry to the PDFs under PATHS."""
    modes = OutputModes(json=json_output)
    try:
        config = _load_config()
        modes = _output_modes(
            ctx, config, quiet=quiet, summary_mode=summary_mode, json_output=json_output
        )
        if only_names and script:
            raise click.ClickException("--only cannot be combined with --script.")
        selections = [path.expanduser().resolve() for path in paths]
        registry_path = _registry_location(registry_file, selections, config)
        if not registry_path.exists():
            raise click.ClickException(
                f"No registry found at {registry_path}. Run `magindex scan` first."
            )

        session = CatalogSession(config)
        session.load_registry(registry_path)
        session.discover(selections, read_only=read_only)
        script_path: Path | None = None
        if only_names:
            result = _rename_selected(session, only_names, modes)
        else:
            result, script_path = _apply_renames(
                session, script=script, script_dir=_base_directory(selections), modes=modes
            )
        session.save_registry(registry_path)
    except (click.ClickException, ConfigError, DiscoveryError, RegistryError, RenameError) as exc:
        _fail_from(exc, modes)

    if modes.json:
        console.print_json(
            data={
                "registry": str(registry_path),
                "rename": _rename_payload(result),
                "script": str(script_path) if script_path else None,
            }
        )
        return

    metrics = {"renamed": result.succeeded, "failed": result.failed, "offline": result.offline}
    _emit(_summary_line("Rename", registry_path.parent, metrics), modes, kind="summary")


@cli.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.argument("name")
@click.argument("new_name")
@_registry_option("Registry file to update.")
def edit(path: Path, name: str, new_name: str, registry_file: Path | None) -> None:
    """Set NEW_NAME as the name for the file NAME found under PATH.

    NAME may be the file's relative path, its filename, or its current
    suggested name. Edited files are never re-analyzed.
    """
    try:
        config = _load_config()
        selection = path.expanduser().resolve()
        registry_path = _registry_location(registry_file, [selection], config)

        session = CatalogSession(config)
        if registry_path.exists():
            session.load_registry(registry_path)
        session.discover([selection], read_only=True)
        entry = session.manual_edit(name, new_name)
        session.save_registry(registry_path)
    except (ConfigError, DiscoveryError, RegistryError, LibraryError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    console.print(f"[green]{entry.relative_path} -> {entry.suggested_name}[/green]")


@cli.command()
@click.argument("registry_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--json", "json_output", is_flag=True, help="Print the status counts as JSON.")
def status(registry_file: Path, json_output: bool) -> None:
    """Summarize the records stored in REGISTRY_FILE."""
    modes = OutputModes(json=json_output)
    try:
        records = list(load_registry(registry_file).records.values())
    except RegistryError as exc:
        _fail_from(exc, modes)

    counts = dict.fromkeys(ENTRY_STATUSES, 0)
    for record in records:
        counts[record.status] = counts.get(record.status, 0) + 1

    if modes.json:
        console.print_json(data={"registry": str(registry_file), "counts": counts})
        return

    table = Table(title=f"Registry {registry_file.name}")
    table.add_column("Original path", overflow="fold")
    table.add_column("Status")
    table.add_column("Current name", overflow="fold")
    table.add_column("Manual")
    for record in records:
        table.add_row(
            record.original_path,
            _styled(record.status),
            record.current_name or "-",
            "yes" if record.is_manual_override else "",
        )
    console.print(table)
    console.print(_summary_line("Status", registry_file, {"records": len(records), **counts}))


@cli.group()
def config() -> None:
    """Inspect and change ~/.magindex/config.yaml."""


def _validated(file_data: dict[str, Any]) -> None:
    try:
        resolve_with_precedence(defaults=MagindexConfig(), file_overrides=file_data)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc


@config.command("view")
@click.option("--no-env", is_flag=True, help="Ignore MAGINDEX__* environment overrides.")
def config_view(no_env: bool) -> None:
    """Print the effective settings as YAML."""
    try:
        effective = ConfigManager().load(include_env=not no_env)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc

    rendered = yaml.safe_dump(effective.model_dump(mode="python"), sort_keys=False)
    console.print(Syntax(rendered, "yaml", word_wrap=True))


@config.command("set")
@click.argument("key")
@click.option("--value", required=True, help="YAML scalar stored under KEY.")
def config_set(key: str, value: str) -> None:
    """Store VALUE under the dotted KEY (for example `processing.concurrency`)."""
    dotted = ".".join(part.strip() for part in key.split(".") if part.strip())
    if not dotted:
        raise click.ClickException("KEY must be a dotted path such as 'llm.model'.")
    try:
        parsed = yaml.safe_load(value)
    except yaml.YAMLError as exc:
        raise click.ClickException(f"VALUE is not valid YAML: {exc}") from exc

    manager = ConfigManager()
    manager.ensure_exists()
    previous = manager.read_text()
    try:
        updated = merge_overrides(manager.load_file_overrides(), expand_dotted({dotted: parsed}))
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    _validated(updated)
    manager.save(updated)

    changes = list(
        difflib.unified_diff(
            previous.splitlines(),
            manager.read_text().splitlines(),
            fromfile="config.yaml",
            tofile="config.yaml (updated)",
            lineterm="",
        )
    )
    # The header timestamp always changes; only report real setting changes.
    if not any(
        line.startswith(("+", "-")) and not line.startswith(("+++", "---", "+#", "-#"))
        for line in changes
    ):
        console.print(f"[yellow]{dotted} already set; nothing changed.[/yellow]")
        return
    console.print(Syntax("\n".join(changes), "diff"))
    console.print(f"[green]Updated {dotted}.[/green]")


@config.command("edit")
def config_edit() -> None:
    """Edit the configuration file in $EDITOR and validate the result."""
    manager = ConfigManager()
    manager.ensure_exists()

    current = manager.read_text()
    edited = click.edit(current, extension=".yaml")
    if edited is None or edited == current:
        console.print("[yellow]No changes made.[/yellow]")
        return

    try:
        parsed = yaml.safe_load(edited) or {}
    except yaml.YAMLError as exc:
        raise click.ClickException(f"The edited file is not valid YAML: {exc}") from exc
    if not isinstance(parsed, dict):
        raise click.ClickException("The configuration must be a YAML mapping.")

    _validated(parsed)
    manager.save(parsed)
    console.print(f"[green]Configuration updated: {manager.config_path}[/green]")


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
