# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Per-linter target file selection."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from ..config.models import LinterSettings
from ..constants import ALWAYS_EXCLUDE_DIRS
from .globs import GlobPattern, compile_globs, match_any

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WalkContext:
    """Parameters required to walk one working directory."""

    base: Path
    excludes: tuple[GlobPattern, ...]
    skip_paths: frozenset[Path]
    exclude_submodules: bool


class FileSelector:
    """Resolve the concrete file set a linter should process."""

    def __init__(self, *, skip_paths: Iterable[Path] = ()) -> None:
        """Create a selector.

        Args:
            skip_paths: Absolute directories never descended into, such as
                the cache directory.
        """

        self._skip_paths = frozenset(path.resolve() for path in skip_paths)

    def select(
        self,
        settings: LinterSettings,
        work_dir: Path,
        global_excludes: Sequence[str] = (),
    ) -> list[str]:
        """Return the sorted relative paths ``settings`` selects under ``work_dir``.

        Args:
            settings: Linter whose ``includes``/``excludes`` apply.
            work_dir: Directory the linter runs in; paths are relative to it.
            global_excludes: Patterns from ``[global]`` unioned with the
                linter's own excludes.

        Returns:
            list[str]: Slash-separated relative paths in lexicographic order.
        """

        includes = compile_globs(settings.includes)
        excludes = compile_globs([*global_excludes, *settings.excludes])
        context = WalkContext(
            base=work_dir.resolve(),
            excludes=excludes,
            skip_paths=self._skip_paths,
            exclude_submodules=settings.exclude_submodules,
        )
        selected = [
            relative
            for relative in self._walk(context)
            if (not includes or match_any(includes, relative)) and not match_any(excludes, relative)
        ]
        selected.sort()
        LOGGER.debug("%s: %d file(s) selected under %s", settings.name, len(selected), work_dir)
        return selected

    def _walk(self, context: WalkContext) -> Iterator[str]:
        """Yield relative paths of regular files below ``context.base``."""

        for dirpath, dirnames, filenames in os.walk(context.base, onerror=_log_walk_error):
            current = Path(dirpath)
            dirnames[:] = [name for name in dirnames if not self._should_skip_directory(current / name, context)]
            for filename in filenames:
                candidate = current / filename
                if candidate.is_symlink() or not candidate.is_file():
                    continue
                yield candidate.relative_to(context.base).as_posix()

    @staticmethod
    def _should_skip_directory(path: Path, context: WalkContext) -> bool:
        if path.name in ALWAYS_EXCLUDE_DIRS or path.is_symlink():
            return True
        if path.resolve() in context.skip_paths:
            return True
        if context.exclude_submodules and (path / ".git").exists():
            LOGGER.debug("skipping nested checkout %s", path)
            return True
        relative = path.relative_to(context.base).as_posix()
        return any(pattern.matches(relative, is_dir=True) for pattern in context.excludes)


def _log_walk_error(error: OSError) -> None:
    LOGGER.warning("traversal error: %s", error)


__all__ = ["FileSelector", "WalkContext"]
