# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Rich console management for report output and status messages.

Two streams are used. Reports (the selected output format) go to stdout and
status messages go to stderr, so that ``jsonl`` or ``gnu`` output can be piped
without noise. Text produced by linters is never passed through Rich
rendering: :func:`write_verbatim` writes it to the console's underlying file
so tabs, carriage returns and control characters survive unchanged.
"""

from __future__ import annotations

import sys
from functools import lru_cache
from typing import Literal, NamedTuple, TextIO

from rich.console import Console

ColorSystem = Literal["auto", "standard", "256", "truecolor", "windows"]


def detect_tty(stream: TextIO | None = None) -> bool:
    """Return ``True`` when ``stream`` (stdout by default) is backed by a terminal."""

    target = sys.stdout if stream is None else stream
    try:
        return target.isatty()
    except (AttributeError, ValueError):
        return False


class ConsoleKey(NamedTuple):
    """Preferences identifying one cached console."""

    color: bool
    emoji: bool
    tty: bool
    stderr: bool


class RichConsoleManager:
    """Provision Rich :class:`Console` instances for the report and status streams."""

    def __init__(self) -> None:
        self._cache: dict[ConsoleKey, Console] = {}

    def get(self, *, color: bool, emoji: bool, stderr: bool = False) -> Console:
        """Return a console configured for ``color`` and ``emoji`` preferences.

        Args:
            color: ``True`` when ANSI colour output should be enabled.
            emoji: ``True`` when Rich should render emoji glyphs.
            stderr: ``True`` for the status stream instead of the report stream.

        Returns:
            Console: Cached or newly constructed console matching the preferences.
        """

        tty = detect_tty(sys.stderr if stderr else sys.stdout)
        key = ConsoleKey(color=color, emoji=emoji, tty=tty, stderr=stderr)
        if key not in self._cache:
            self._cache[key] = self._build(key)
        return self._cache[key]

    def report(self, *, color: bool) -> Console:
        """Return the stdout console used for linter reports.

        Emoji substitution is always off so ``:name:`` sequences in linter
        messages print as written.
        """

        return self.get(color=color, emoji=False)

    def status(self, *, color: bool, emoji: bool = False) -> Console:
        """Return the stderr console used for status and failure messages."""

        return self.get(color=color, emoji=emoji, stderr=True)

    @staticmethod
    def _build(key: ConsoleKey) -> Console:
        enabled = key.color and key.tty
        color_system: ColorSystem | None = "auto" if enabled else None
        return Console(
            color_system=color_system,
            force_terminal=key.tty,
            no_color=not enabled,
            emoji=key.emoji,
            highlight=False,
            soft_wrap=True,
            stderr=key.stderr,
        )


def write_verbatim(console: Console, text: str) -> None:
    """Write ``text`` to the file behind ``console`` exactly as given."""

    if not text:
        return
    handle = console.file
    handle.write(text)
    handle.flush()


@lru_cache(maxsize=1)
def get_console_manager() -> RichConsoleManager:
    """Return the process-wide :class:`RichConsoleManager` instance."""

    return RichConsoleManager()


__all__ = ["ConsoleKey", "RichConsoleManager", "detect_tty", "get_console_manager", "write_verbatim"]
