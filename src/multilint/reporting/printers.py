# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Renderers for the null, text, raw, jsonl and gnu output formats.

Rich styles only the text multilint writes itself: headers, statuses, error
descriptions and modified-file notices. Anything a linter printed is written
verbatim through :func:`~multilint.console.write_verbatim`.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from enum import StrEnum
from typing import Final, NamedTuple

from rich.console import Console
from rich.text import Text

from ..console import write_verbatim
from ..models import LintMessage, OutcomeStatus, RunOutcome


class OutputFormat(StrEnum):
    """Closed set of supported output formats."""

    NULL = "null"
    TEXT = "text"
    RAW = "raw"
    JSONL = "jsonl"
    GNU = "gnu"


Renderer = Callable[[RunOutcome, Console], None]
HeaderRenderer = Callable[[str, Console], None]

STATUS_STYLES: Final[dict[OutcomeStatus, str]] = {
    OutcomeStatus.OK: "green",
    OutcomeStatus.FAILED: "red",
    OutcomeStatus.ERROR: "bold red",
    OutcomeStatus.SKIPPED: "yellow",
    OutcomeStatus.CACHED: "cyan",
}


def format_location(message: LintMessage) -> str:
    """Return ``file:line:column`` for ``message``."""

    return f"{message.file or ''}:{message.line}:{message.column}"


def error_message(outcome: RunOutcome) -> LintMessage:
    """Describe an execution error as a message so structured streams stay uniform."""

    return LintMessage(program=outcome.program, message=f"error: {outcome.error or 'linter could not be run'}")


def render_null(outcome: RunOutcome, console: Console) -> None:
    """Discard ``outcome``."""


def header_none(name: str, console: Console) -> None:
    """Formats without a per-linter header print nothing when a linter starts."""


def header_text(name: str, console: Console) -> None:
    """Print ``Running <name> ... `` and leave the line open for the status."""

    header = Text()
    header.append("Running", style="bold green")
    header.append(f" {name} ... ")
    console.print(header, end="")


def render_text(outcome: RunOutcome, console: Console) -> None:
    """Close the header line with the status, then print the linter's lines."""

    console.print(Text(outcome.status.value, style=STATUS_STYLES[outcome.status]))
    for line in outcome.lines:
        if line.message is None:
            write_verbatim(console, f"{line.text}\n")
        else:
            write_verbatim(console, f"{format_location(line.message)}: {line.message.message}\n")
    if outcome.error:
        console.print(Text(outcome.error, style="red"))
    for path in outcome.modified:
        console.print(Text(f"{path}: modified", style="yellow"))


def render_raw(outcome: RunOutcome, console: Console) -> None:
    """Write the captured output exactly as the linter produced it."""

    write_verbatim(console, outcome.output)


def _structured(outcome: RunOutcome) -> Iterable[LintMessage]:
    if outcome.status is OutcomeStatus.ERROR:
        return [error_message(outcome)]
    return outcome.messages


def jsonl_record(message: LintMessage) -> str:
    """Serialise ``message`` as one compact, key-sorted JSON object."""

    return json.dumps(message.model_dump(), sort_keys=True, separators=(",", ":"))


def render_jsonl(outcome: RunOutcome, console: Console) -> None:
    """Write one JSON object per structured message."""

    for message in _structured(outcome):
        write_verbatim(console, jsonl_record(message) + "\n")


def gnu_line(message: LintMessage) -> str:
    """Return ``program:file:line:column: message``."""

    if message.file is None and not message.line:
        return f"{message.program}: {message.message}"
    return f"{message.program}:{format_location(message)}: {message.message}"


def render_gnu(outcome: RunOutcome, console: Console) -> None:
    """Write one GNU-style line per structured message."""

    for message in _structured(outcome):
        write_verbatim(console, gnu_line(message) + "\n")


class FormatRenderer(NamedTuple):
    """Callbacks invoked when a linter starts and when its outcome arrives."""

    start: HeaderRenderer
    finish: Renderer


RENDERERS: Final[dict[OutputFormat, FormatRenderer]] = {
    OutputFormat.NULL: FormatRenderer(header_none, render_null),
    OutputFormat.TEXT: FormatRenderer(header_text, render_text),
    OutputFormat.RAW: FormatRenderer(header_none, render_raw),
    OutputFormat.JSONL: FormatRenderer(header_none, render_jsonl),
    OutputFormat.GNU: FormatRenderer(header_none, render_gnu),
}


class Printer:
    """Render outcomes in the order they are handed over."""

    def __init__(self, fmt: OutputFormat, console: Console) -> None:
        self.format = fmt
        self.console = console
        self._renderer = RENDERERS[fmt]

    def start(self, name: str) -> None:
        self._renderer.start(name, self.console)

    def finish(self, outcome: RunOutcome) -> None:
        self._renderer.finish(outcome, self.console)

    def emit(self, outcome: RunOutcome) -> None:
        """Render a complete outcome, header included."""

        self.start(outcome.program)
        self.finish(outcome)

    def emit_all(self, outcomes: Iterable[RunOutcome]) -> None:
        for outcome in outcomes:
            self.emit(outcome)


__all__ = [
    "FormatRenderer",
    "HeaderRenderer",
    "OutputFormat",
    "Printer",
    "RENDERERS",
    "Renderer",
    "error_message",
    "format_location",
    "gnu_line",
    "header_none",
    "header_text",
    "jsonl_record",
    "render_gnu",
    "render_jsonl",
    "render_null",
    "render_raw",
    "render_text",
]
