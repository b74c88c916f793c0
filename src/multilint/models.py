# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Core data models shared across the multilint package."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class LintMessage(BaseModel):
    """Structured diagnostic extracted from one line of linter output.

    ``line`` and ``column`` are ``0`` when the matching grammar does not
    capture them.
    """

    model_config = ConfigDict(frozen=True)

    program: str
    file: str | None = None
    line: int = 0
    column: int = 0
    message: str = ""


class OutputLine(BaseModel):
    """A captured output line and the message parsed from it, if any."""

    model_config = ConfigDict(frozen=True)

    text: str
    message: LintMessage | None = None

    @property
    def structured(self) -> bool:
        return self.message is not None


class OutcomeStatus(StrEnum):
    """Final state of a single linter within a run."""

    OK = "ok"
    FAILED = "failed"
    ERROR = "error"
    SKIPPED = "skipped"
    CACHED = "cached"


_SUCCESS_STATUSES = frozenset({OutcomeStatus.OK, OutcomeStatus.SKIPPED, OutcomeStatus.CACHED})


class RunOutcome(BaseModel):
    """Result bundle produced for each configured linter."""

    model_config = ConfigDict(validate_assignment=True)

    program: str
    status: OutcomeStatus
    exit_status: int | None = None
    output: str = ""
    lines: list[OutputLine] = Field(default_factory=list)
    error: str | None = None
    files: list[str] = Field(default_factory=list)
    modified: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Return ``True`` when the linter passed, was skipped or was cached."""
        return self.status in _SUCCESS_STATUSES

    @property
    def messages(self) -> list[LintMessage]:
        """Structured messages in emission order."""
        return [line.message for line in self.lines if line.message is not None]

    @property
    def unstructured(self) -> list[str]:
        """Output lines that matched no grammar."""
        return [line.text for line in self.lines if line.message is None]


class RunResult(BaseModel):
    """Aggregate result for a full orchestrator run."""

    model_config = ConfigDict(validate_assignment=True)

    root: Path
    outcomes: list[RunOutcome] = Field(default_factory=list)

    def has_failures(self) -> bool:
        """Return ``True`` when any outcome failed."""
        return any(not outcome.succeeded for outcome in self.outcomes)

    @property
    def failed(self) -> bool:
        return self.has_failures()


__all__ = [
    "LintMessage",
    "OutcomeStatus",
    "OutputLine",
    "RunOutcome",
    "RunResult",
]
