# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Hierarchical discovery and merging of ``multilint.toml`` files.

Configuration files are collected from the filesystem root down to the
working directory and folded in that order, so files closer to the working
directory take precedence. The merge rule is field level:

* tables merge key by key;
* scalars and sequences replace the earlier value;
* a key whose value changes kind (table, array, string, boolean, number)
  between files is rejected.
"""

from __future__ import annotations

import logging
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

from pydantic import ValidationError

from ..constants import CONFIG_FILE_NAME
from .models import ConfigError, GlobalSettings, LinterSettings, MultilintConfig

LOGGER = logging.getLogger(__name__)

GLOBAL_KEY: Final[str] = "global"
LINTER_KEY: Final[str] = "linter"
_TOP_LEVEL_KEYS: Final[frozenset[str]] = frozenset({GLOBAL_KEY, LINTER_KEY})


class TomlConfigSource:
    """Load configuration data from a single TOML document."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self.name = str(path)

    def load(self) -> dict[str, Any]:
        """Return the parsed document.

        Raises:
            ConfigError: If the file cannot be read or is not valid TOML.
        """

        try:
            with self.path.open("rb") as handle:
                data = tomllib.load(handle)
        except OSError as exc:
            raise ConfigError(f'Cannot read config "{self.path}": {exc}') from exc
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f'Cannot parse config "{self.path}": {exc}') from exc
        unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
        if unknown:
            raise ConfigError(f'Unknown section(s) in "{self.path}": {", ".join(unknown)}')
        return data

    def describe(self) -> str:
        return f"TOML configuration at {self.name}"


def discover_config_files(start: Path, *, file_name: str = CONFIG_FILE_NAME) -> list[Path]:
    """Return config files between the filesystem root and ``start``, root first."""

    found: list[Path] = []
    current = start.resolve()
    for directory in (current, *current.parents):
        candidate = directory / file_name
        if candidate.is_file():
            found.append(candidate)
    found.reverse()
    return found


def _kind(value: object) -> str:
    if isinstance(value, Mapping):
        return "table"
    if isinstance(value, list):
        return "array"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return type(value).__name__


def merge_fragments(
    base: Mapping[str, Any],
    override: Mapping[str, Any],
    *,
    location: tuple[str, ...] = (),
    source: str = "<config>",
) -> dict[str, Any]:
    """Return ``override`` folded onto ``base`` using the field-level rule.

    Args:
        base: Result of the earlier (closer to the root) fragments.
        override: Fragment closer to the working directory.
        location: Key path used in error messages.
        source: Name of the file ``override`` came from.

    Returns:
        dict[str, Any]: Merged mapping; key order is first appearance order.

    Raises:
        ConfigError: If a key changes kind between fragments.
    """

    result: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key not in result:
            result[key] = value
            continue
        current = result[key]
        key_path = (*location, key)
        if _kind(current) != _kind(value):
            dotted = ".".join(key_path)
            raise ConfigError(
                f'"{dotted}" in "{source}" is a {_kind(value)} but an earlier config declares a {_kind(current)}',
            )
        if isinstance(current, Mapping):
            result[key] = merge_fragments(current, value, location=key_path, source=source)
        else:
            result[key] = value
    return result


def build_config(data: Mapping[str, Any], *, root: Path, sources: list[Path] | None = None) -> MultilintConfig:
    """Validate a merged mapping into :class:`MultilintConfig`.

    Raises:
        ConfigError: If any section fails validation.
    """

    raw_global = data.get(GLOBAL_KEY, {})
    raw_linters = data.get(LINTER_KEY, {})
    if not isinstance(raw_global, Mapping):
        raise ConfigError(f"[{GLOBAL_KEY}] must be a table")
    if not isinstance(raw_linters, Mapping):
        raise ConfigError(f"[{LINTER_KEY}] must be a table of linter tables")

    try:
        global_settings = GlobalSettings(**raw_global)
    except ValidationError as exc:
        raise ConfigError(f"Invalid [{GLOBAL_KEY}] section: {_describe(exc)}") from exc

    linters: dict[str, LinterSettings] = {}
    for name, table in raw_linters.items():
        if not isinstance(table, Mapping):
            raise ConfigError(f"[{LINTER_KEY}.{name}] must be a table")
        if "name" in table:
            raise ConfigError(f"[{LINTER_KEY}.{name}] must not set 'name'; the table key is the name")
        try:
            linters[name] = LinterSettings(name=name, **table)
        except ValidationError as exc:
            raise ConfigError(f"Invalid [{LINTER_KEY}.{name}] section: {_describe(exc)}") from exc

    return MultilintConfig(root=root, global_=global_settings, linters=linters, sources=list(sources or []))


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        loc = ".".join(str(item) for item in error.get("loc", ())) or "<section>"
        parts.append(f"{loc}: {error.get('msg', 'invalid value')}")
    return "; ".join(parts)


class ConfigResolver:
    """Resolve the effective configuration for a working directory."""

    def __init__(
        self,
        start: Path,
        *,
        config_file: Path | None = None,
        root: Path | None = None,
    ) -> None:
        """Create a resolver.

        Args:
            start: Directory whose ancestors are searched for config files.
            config_file: Explicit config file; disables hierarchical discovery.
            root: Config root override. Defaults to ``start``, or to the
                explicit config file's directory when one is given.
        """

        self._start = start.resolve()
        self._config_file = config_file.resolve() if config_file is not None else None
        if root is not None:
            self._root = root.resolve()
        elif self._config_file is not None:
            self._root = self._config_file.parent
        else:
            self._root = self._start

    def sources(self) -> list[Path]:
        """Return the config files that will be merged, root first."""

        if self._config_file is not None:
            if not self._config_file.is_file():
                raise ConfigError(f'Config file "{self._config_file}" does not exist')
            return [self._config_file]
        return discover_config_files(self._start)

    def resolve(self) -> MultilintConfig:
        """Load, merge and validate every discovered config file.

        Raises:
            ConfigError: If a file is malformed or the merge is inconsistent.
        """

        paths = self.sources()
        merged: dict[str, Any] = {}
        for path in paths:
            source = TomlConfigSource(path)
            LOGGER.debug("loading %s", source.describe())
            merged = merge_fragments(merged, source.load(), source=source.name)
        if not paths:
            LOGGER.debug("no %s found above %s", CONFIG_FILE_NAME, self._start)
        return build_config(merged, root=self._root, sources=paths)


def load_config(start: Path, *, config_file: Path | None = None) -> MultilintConfig:
    """Resolve the configuration for ``start`` using the default discovery."""

    return ConfigResolver(start, config_file=config_file).resolve()


__all__ = [
    "ConfigResolver",
    "TomlConfigSource",
    "build_config",
    "discover_config_files",
    "load_config",
    "merge_fragments",
]
