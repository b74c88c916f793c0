# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Typed configuration models for ``multilint.toml``."""

from __future__ import annotations

import os
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import DEFAULT_CACHE_DIR


class ConfigError(Exception):
    """Raised when configuration input is invalid."""


def default_parallel_jobs() -> int:
    """Return the number of available processing units, at least one."""

    return max(1, os.cpu_count() or 1)


class GlobalSettings(BaseModel):
    """Settings applied to every linter."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    excludes: list[str] = Field(default_factory=list)
    cache: bool = True
    cache_dir: str = DEFAULT_CACHE_DIR
    jobs: int | None = Field(default=None, ge=1)


class LinterSettings(BaseModel):
    """Settings for one ``[linter.<name>]`` table."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    name: str
    command: str
    options: list[str] = Field(default_factory=list)
    work_dir: str | None = None
    includes: list[str] = Field(default_factory=list)
    excludes: list[str] = Field(default_factory=list)
    formats: list[str] = Field(default_factory=list)
    check_hash: bool = False
    exclude_submodules: bool = True
    single_file: bool = False
    timeout: float | None = Field(default=None, gt=0)

    @field_validator("command")
    @classmethod
    def _require_command(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("command must not be empty")
        return value

    @property
    def passes_files(self) -> bool:
        """Return ``True`` when resolved files are appended as arguments."""
        return bool(self.includes)

    def resolve_work_dir(self, root: Path) -> Path:
        """Return the absolute working directory relative to ``root``."""
        if not self.work_dir:
            return root
        candidate = Path(self.work_dir).expanduser()
        return candidate if candidate.is_absolute() else root / candidate


class MultilintConfig(BaseModel):
    """Fully merged configuration."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    root: Path
    global_: GlobalSettings = Field(default_factory=GlobalSettings, alias="global")
    linters: dict[str, LinterSettings] = Field(default_factory=dict)
    sources: list[Path] = Field(default_factory=list)

    def select(self, names: Iterable[str] | None) -> MultilintConfig:
        """Return a copy restricted to ``names``, keeping declaration order.

        Raises:
            ConfigError: If a requested linter is not configured.
        """

        if not names:
            return self
        wanted = list(dict.fromkeys(names))
        unknown = [name for name in wanted if name not in self.linters]
        if unknown:
            raise ConfigError(f"Unknown linter(s): {', '.join(unknown)}")
        selected = {name: settings for name, settings in self.linters.items() if name in wanted}
        return self.model_copy(update={"linters": selected})

    def cache_path(self) -> Path:
        """Return the absolute cache directory."""
        path = Path(self.global_.cache_dir).expanduser()
        return path if path.is_absolute() else self.root / path


__all__ = [
    "ConfigError",
    "GlobalSettings",
    "LinterSettings",
    "MultilintConfig",
    "default_parallel_jobs",
]
