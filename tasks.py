"""Invoke tasks for developing magindex.

Every task shells out to `uv` so that local runs use the same locked
environment as CI.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Mapping, Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCE_DIRS = ("src", "tests", "tasks.py")


def _uv(
    ctx: Context,
    args: Sequence[str],
    *,
    echo: bool = True,
    env: Mapping[str, str] | None = None,
) -> None:
    """Run ``uv`` with ``args`` inside the project root.

    Args:
        ctx: Invoke execution context.
        args: Arguments placed after the `uv` executable.
        echo: Whether to echo the command before running it.
        env: Extra environment variables for the invocation.
    """
    run_env = dict(ctx.config.run.env or {})
    if env:
        run_env.update(env)
    with ctx.cd(str(PROJECT_ROOT)):
        ctx.run(shlex.join(("uv", *args)), echo=echo, pty=True, env=run_env)


@task
def sync(ctx: Context, dev: bool = True) -> None:
    """Install magindex and, by default, its development extras."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "dev"])
    _uv(ctx, args)


@task(help={"clean": "Remove existing artifacts from dist/ before building."})
def build(ctx: Context, clean: bool = False) -> None:
    """Build the sdist and wheel into `dist/`."""
    if clean and DIST_DIR.exists():
        shutil.rmtree(DIST_DIR)
    _uv(ctx, ["build"])


@task(
    help={
        "k": "pytest -k expression for test selection.",
        "path": "Path or module to test (defaults to tests/).",
        "options": "Additional flags forwarded verbatim to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite.

    The Gemini API key is blanked so that no test can reach the real service.
    """
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    if path:
        args.append(path)
    _uv(ctx, args, env={"GEMINI_API_KEY": ""})


@task(
    help={
        "fix": "Apply auto-fixes where possible (ruff --fix).",
        "check_format": "Run ruff format --check before linting.",
    }
)
def lint(ctx: Context, fix: bool = False, check_format: bool = False) -> None:
    """Run Ruff formatting and lint checks."""
    if check_format:
        _uv(ctx, ["run", "ruff", "format", "--check", *SOURCE_DIRS])
    lint_args: list[str] = ["run", "ruff", "check", *SOURCE_DIRS]
    if fix:
        lint_args.append("--fix")
    _uv(ctx, lint_args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package sources."""
    _uv(ctx, ["run", "mypy", "src"])


@task(help={"path": "Registry file to summarize."})
def registry(ctx: Context, path: str) -> None:
    """Print the status table of an exported registry."""
    _uv(ctx, ["run", "magindex", "status", path])


@task
def ci(ctx: Context) -> None:
    """Run lint, type checks, and tests the way CI does."""
    ctx.invoke(lint, check_format=True)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, build, tests, lint, mypy, registry, ci)
