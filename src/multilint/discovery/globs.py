# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Glob patterns matched against slash-separated relative paths.

Supported syntax: ``*`` and ``?`` within one path segment, ``[...]``
character classes (``!`` or ``^`` negates), and ``**`` spanning any number
of directories. A pattern without an inner ``/`` matches at any depth; a
pattern containing ``/`` is anchored at the walk root. A trailing ``/``
restricts the pattern to directories.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from functools import lru_cache

_SEP = "/"
_ANY_DIRS = "(?:[^/]+/)*"


def _translate_class(segment: str, start: int) -> tuple[str, int]:
    """Translate a ``[...]`` class beginning at ``start``.

    Returns:
        tuple[str, int]: Regex fragment and the index after the class. An
        unterminated class is treated as a literal ``[``.
    """

    index = start + 1
    if index < len(segment) and segment[index] in "!^":
        index += 1
    if index < len(segment) and segment[index] == "]":
        index += 1
    close = segment.find("]", index)
    if close == -1:
        return re.escape("["), start + 1
    body = segment[start + 1 : close]
    negate = body[:1] in ("!", "^")
    if negate:
        body = body[1:]
    body = body.replace("\\", "\\\\")
    return f"[{'^/' if negate else ''}{body}]", close + 1


def _translate_segment(segment: str) -> str:
    parts: list[str] = []
    index = 0
    while index < len(segment):
        char = segment[index]
        if char == "*":
            while index < len(segment) and segment[index] == "*":
                index += 1
            parts.append("[^/]*")
            continue
        if char == "?":
            parts.append("[^/]")
        elif char == "[":
            fragment, index = _translate_class(segment, index)
            parts.append(fragment)
            continue
        else:
            parts.append(re.escape(char))
        index += 1
    return "".join(parts)


def translate(pattern: str) -> tuple[str, bool]:
    """Return the regex source for ``pattern`` and whether it is directory-only."""

    cleaned = pattern.strip()
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    dir_only = cleaned.endswith(_SEP)
    cleaned = cleaned.rstrip(_SEP)
    anchored = _SEP in cleaned
    cleaned = cleaned.lstrip(_SEP)

    segments = cleaned.split(_SEP) if cleaned else []
    pieces: list[str] = [] if anchored else [_ANY_DIRS]
    for index, segment in enumerate(segments):
        last = index == len(segments) - 1
        if segment == "**":
            pieces.append(".*" if last else _ANY_DIRS)
            continue
        pieces.append(_translate_segment(segment))
        if not last:
            pieces.append(_SEP)
    return "".join(pieces), dir_only


@dataclass(frozen=True, slots=True)
class GlobPattern:
    """Compiled glob pattern."""

    source: str
    regex: re.Pattern[str] = field(repr=False, compare=False)
    dir_only: bool = False

    def matches(self, relative: str, *, is_dir: bool = False) -> bool:
        """Return whether ``relative`` (slash separated) matches this pattern."""

        if self.dir_only and not is_dir:
            return False
        return self.regex.fullmatch(relative) is not None

    def matches_path(self, relative: str) -> bool:
        """Return whether the file ``relative`` or any of its parent directories matches."""

        parts = relative.split(_SEP)
        for depth in range(len(parts), 0, -1):
            if self.matches(_SEP.join(parts[:depth]), is_dir=depth < len(parts)):
                return True
        return False


@lru_cache(maxsize=512)
def compile_glob(pattern: str) -> GlobPattern:
    """Compile ``pattern`` into a :class:`GlobPattern`."""

    source, dir_only = translate(pattern)
    return GlobPattern(source=pattern, regex=re.compile(source, re.DOTALL), dir_only=dir_only)


def compile_globs(patterns: Iterable[str]) -> tuple[GlobPattern, ...]:
    """Compile each non-empty pattern, dropping duplicates while keeping order."""

    return tuple(compile_glob(pattern) for pattern in dict.fromkeys(patterns) if pattern.strip())


def match_any(patterns: Iterable[GlobPattern], relative: str) -> bool:
    """Return whether any of ``patterns`` matches ``relative`` or one of its parents."""

    return any(pattern.matches_path(relative) for pattern in patterns)


__all__ = ["GlobPattern", "compile_glob", "compile_globs", "match_any", "translate"]
