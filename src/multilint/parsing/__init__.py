# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Output grammar compilation and line parsing."""

from __future__ import annotations

from .grammar import (
    CompiledGrammar,
    GrammarToken,
    Matcher,
    ParseGrammarError,
    Placeholder,
    compile_grammar,
    compile_grammars,
    to_regex,
    tokenize,
)

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
