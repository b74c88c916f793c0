# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Command line entry point for multilint."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from . import __version__
from .cache import InMemoryCacheStore
from .config import ConfigError, ConfigResolver
from .console import detect_tty, get_console_manager
from .constants import EXIT_FATAL
from .logging import configure_debug_logging, fail, warn
from .orchestration import Orchestrator, OrchestratorHooks
from .reporting import OutputFormat, Printer

app = typer.Typer(
    name="multilint",
    help="Run every configured linter in parallel and report their findings.",
    add_completion=False,
    no_args_is_help=False,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"multilint {__version__}")
        raise typer.Exit()


@app.command()
def lint(
    output_format: Annotated[
        OutputFormat,
        typer.Option("--format", "-f", case_sensitive=False, help="Output format."),
    ] = OutputFormat.TEXT,
    work_dir: Annotated[
        Path | None,
        typer.Option("--work-dir", "-C", help="Directory to run from instead of the current one."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Use this config file instead of discovering multilint.toml."),
    ] = None,
    linters: Annotated[
        list[str] | None,
        typer.Option("--linter", "-l", help="Only run the named linter. Repeatable."),
    ] = None,
    jobs: Annotated[
        int | None,
        typer.Option("--jobs", "-j", min=1, help="Maximum number of linters running at once."),
    ] = None,
    no_cache: Annotated[
        bool,
        typer.Option("--no-cache", help="Ignore and do not persist cached run records."),
    ] = False,
    color: Annotated[
        bool | None,
        typer.Option("--color/--no-color", help="Force coloured output on or off."),
    ] = None,
    debug: Annotated[
        bool,
        typer.Option("--debug", help="Print debug traces to stderr."),
    ] = False,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = False,
) -> None:
    """Lint the tree rooted at the working directory."""

    configure_debug_logging(debug)
    use_color = detect_tty() if color is None else color
    start = work_dir if work_dir is not None else Path.cwd()
    if not start.is_dir():
        fail(f"{start} is not a directory", use_color=use_color)
        raise typer.Exit(code=EXIT_FATAL)

    try:
        config = ConfigResolver(start, config_file=config_file, root=work_dir).resolve().select(linters)
        if not config.linters:
            warn("No linters configured", use_color=use_color)
        console = get_console_manager().report(color=use_color)
        printer = Printer(output_format, console)
        orchestrator = Orchestrator(
            cache_store=InMemoryCacheStore() if no_cache else None,
            jobs=jobs,
            hooks=OrchestratorHooks(before_linter=printer.start, after_linter=printer.finish),
            use_color=use_color,
        )
        status = orchestrator.run_all(config)
    except ConfigError as exc:
        fail(str(exc), use_color=use_color)
        raise typer.Exit(code=EXIT_FATAL) from exc
    raise typer.Exit(code=status)


def main() -> None:
    """Invoke the typer application."""

    app(prog_name="multilint")


__all__ = ["app", "lint", "main"]
