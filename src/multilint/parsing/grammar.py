# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Compile printf-style output grammars into line matchers.

A grammar such as ``%f:%l:%c: %m`` is tokenized into literal and placeholder
runs, then turned into a regex with one named group per placeholder:

``%f``
    file path, as printed by the tool (no ``:`` or control characters)
``%l`` / ``%c``
    line / column number
``%m``
    the rest of the message
``%p``
    program name, overriding the linter name when present
``%%``
    a literal ``%``

Literal text is escaped, so ``(`` or ``.`` match themselves. A leading ``^``
and a trailing ``$`` are accepted as anchor markers; every grammar must match
a whole line either way.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Final

from ..config.models import ConfigError
from ..models import LintMessage, OutputLine

ESCAPE: Final[str] = "%"
_LEADING_ANCHOR: Final[str] = "^"
_TRAILING_ANCHOR: Final[str] = "$"
_PATH_PATTERN: Final[str] = r"[^:\x00-\x1f]+"


class ParseGrammarError(ConfigError):
    """Raised when a declared output grammar is malformed."""


class Placeholder(StrEnum):
    """Placeholders recognised in a grammar, keyed by their letter."""

    FILE = "f"
    LINE = "l"
    COLUMN = "c"
    MESSAGE = "m"
    PROGRAM = "p"

    @property
    def group(self) -> str:
        return _GROUP_NAMES[self]

    @property
    def pattern(self) -> str:
        return _GROUP_PATTERNS[self]


_GROUP_NAMES: Final[dict[Placeholder, str]] = {
    Placeholder.FILE: "file",
    Placeholder.LINE: "line",
    Placeholder.COLUMN: "column",
    Placeholder.MESSAGE: "message",
    Placeholder.PROGRAM: "program",
}

_GROUP_PATTERNS: Final[dict[Placeholder, str]] = {
    Placeholder.FILE: _PATH_PATTERN,
    Placeholder.LINE: r"\d+",
    Placeholder.COLUMN: r"\d+",
    Placeholder.MESSAGE: r".*",
    Placeholder.PROGRAM: _PATH_PATTERN,
}


@dataclass(frozen=True, slots=True)
class GrammarToken:
    """A literal run (``placeholder`` is ``None``) or a single placeholder."""

    text: str = ""
    placeholder: Placeholder | None = None


def _strip_anchors(grammar: str) -> str:
    body = grammar
    if body.startswith(_LEADING_ANCHOR):
        body = body[1:]
    if body.endswith(_TRAILING_ANCHOR):
        body = body[:-1]
    return body


def tokenize(grammar: str) -> list[GrammarToken]:
    """Split ``grammar`` into literal and placeholder tokens.

    Raises:
        ParseGrammarError: On an unknown or dangling ``%`` escape, a repeated
            placeholder, or an empty grammar.
    """

    body = _strip_anchors(grammar)
    if not body:
        raise ParseGrammarError(f"Empty grammar {grammar!r}")

    tokens: list[GrammarToken] = []
    literal: list[str] = []
    seen: set[Placeholder] = set()
    chars = iter(enumerate(body))
    for index, char in chars:
        if char != ESCAPE:
            literal.append(char)
            continue
        step = next(chars, None)
        if step is None:
            raise ParseGrammarError(f"Dangling '%' at the end of grammar {grammar!r}")
        _, code = step
        if code == ESCAPE:
            literal.append(ESCAPE)
            continue
        try:
            placeholder = Placeholder(code)
        except ValueError:
            raise ParseGrammarError(f"Invalid placeholder '%{code}' at offset {index} in grammar {grammar!r}") from None
        if placeholder in seen:
            raise ParseGrammarError(f"Placeholder '%{code}' repeated in grammar {grammar!r}")
        seen.add(placeholder)
        if literal:
            tokens.append(GrammarToken(text="".join(literal)))
            literal = []
        tokens.append(GrammarToken(placeholder=placeholder))
    if literal:
        tokens.append(GrammarToken(text="".join(literal)))
    return tokens


def to_regex(tokens: Iterable[GrammarToken]) -> str:
    """Return regex source with one named group per placeholder, in order."""

    parts: list[str] = []
    for token in tokens:
        if token.placeholder is None:
            parts.append(re.escape(token.text))
        else:
            parts.append(f"(?P<{token.placeholder.group}>{token.placeholder.pattern})")
    return "".join(parts)


@dataclass(frozen=True, slots=True)
class CompiledGrammar:
    """A grammar together with its anchored regex."""

    source: str
    regex: re.Pattern[str] = field(repr=False, compare=False)
    placeholders: tuple[Placeholder, ...] = ()

    def match(self, program: str, line: str) -> LintMessage | None:
        found = self.regex.fullmatch(line)
        if found is None:
            return None
        groups = found.groupdict()
        return LintMessage(
            program=groups.get(Placeholder.PROGRAM.group) or program,
            file=groups.get(Placeholder.FILE.group),
            line=int(groups.get(Placeholder.LINE.group) or 0),
            column=int(groups.get(Placeholder.COLUMN.group) or 0),
            message=groups.get(Placeholder.MESSAGE.group) or "",
        )


def compile_grammar(grammar: str) -> CompiledGrammar:
    """Compile a single grammar string."""

    tokens = tokenize(grammar)
    placeholders = tuple(token.placeholder for token in tokens if token.placeholder is not None)
    try:
        regex = re.compile(to_regex(tokens))
    except re.error as exc:  # pragma: no cover - escaped literals always compile
        raise ParseGrammarError(f"Cannot compile grammar {grammar!r}: {exc}") from exc
    return CompiledGrammar(source=grammar, regex=regex, placeholders=placeholders)


class Matcher:
    """Ordered set of grammars; the first grammar matching a line wins."""

    def __init__(self, grammars: Sequence[CompiledGrammar] = ()) -> None:
        self._grammars = tuple(grammars)

    @property
    def grammars(self) -> tuple[CompiledGrammar, ...]:
        return self._grammars

    def __bool__(self) -> bool:
        return bool(self._grammars)

    def parse(self, program: str, raw_line: str) -> LintMessage | None:
        """Return the message parsed from ``raw_line`` or ``None``."""

        for grammar in self._grammars:
            message = grammar.match(program, raw_line)
            if message is not None:
                return message
        return None

    def parse_output(self, program: str, text: str) -> list[OutputLine]:
        """Split ``text`` into lines, attaching a message to every match.

        Lines that match no grammar, and every line when no grammar is
        configured, are kept as unstructured output.
        """

        return [OutputLine(text=raw, message=self.parse(program, raw)) for raw in text.splitlines()]


def compile_grammars(grammars: Iterable[str]) -> Matcher:
    """Compile ``grammars`` in declaration order."""

    return Matcher([compile_grammar(grammar) for grammar in grammars])


__all__ = [
    "CompiledGrammar",
    "GrammarToken",
    "Matcher",
    "ParseGrammarError",
    "Placeholder",
    "compile_grammar",
    "compile_grammars",
    "to_regex",
    "tokenize",
]
