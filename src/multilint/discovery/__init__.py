# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""File selection helpers."""

from __future__ import annotations

from .globs import GlobPattern, compile_glob, compile_globs, match_any
from .selector import FileSelector

__all__ = ["FileSelector", "GlobPattern", "compile_glob", "compile_globs", "match_any"]
