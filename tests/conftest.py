# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Shared pytest fixtures."""

from __future__ import annotations

import stat
import sys
from collections.abc import Callable
from io import StringIO
from pathlib import Path
from textwrap import dedent

import pytest
from rich.console import Console


@pytest.fixture
def make_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Return a factory writing executable Python scripts under ``tmp_path/bin``."""

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def factory(name: str, body: str) -> Path:
        script = bin_dir / name
        script.write_text(f"#!{sys.executable}\n" + dedent(body), encoding="utf-8")
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return script

    return factory


@pytest.fixture
def buffer_console() -> tuple[Console, StringIO]:
    """Return a colourless console writing into a string buffer."""

    buffer = StringIO()
    console = Console(file=buffer, color_system=None, soft_wrap=True, width=200, emoji=False)
    return console, buffer


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper writing ``multilint.toml`` into ``tmp_path``."""

    def factory(text: str, directory: Path | None = None) -> Path:
        target = (directory or tmp_path) / "multilint.toml"
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(dedent(text), encoding="utf-8")
        return target

    return factory

