# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Shared constants."""

from __future__ import annotations

from typing import Final

CONFIG_FILE_NAME: Final[str] = "multilint.toml"
DEFAULT_CACHE_DIR: Final[str] = ".multilint-cache"

ALWAYS_EXCLUDE_DIRS: Final[frozenset[str]] = frozenset({".git", DEFAULT_CACHE_DIR})

EXIT_OK: Final[int] = 0
EXIT_LINT_FAILURE: Final[int] = 1
EXIT_FATAL: Final[int] = 2

__all__ = [
    "ALWAYS_EXCLUDE_DIRS",
    "CONFIG_FILE_NAME",
    "DEFAULT_CACHE_DIR",
    "EXIT_FATAL",
    "EXIT_LINT_FAILURE",
    "EXIT_OK",
]
