# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Backing stores for per-linter run records."""

from __future__ import annotations

import hashlib
import json
import logging
from pathlib import Path
from threading import Lock
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, ValidationError

LOGGER = logging.getLogger(__name__)


class RunRecord(BaseModel):
    """State remembered about the last run of one linter."""

    model_config = ConfigDict(frozen=True)

    name: str
    fingerprint: str
    files_digest: str
    latest_mtime_ns: int = 0
    content_digest: str | None = None
    succeeded: bool = False


@runtime_checkable
class CacheStore(Protocol):
    """Key-value contract mapping a linter name to its :class:`RunRecord`."""

    def load(self, name: str) -> RunRecord | None:
        """Return the stored record for ``name`` or ``None``."""
        ...

    def save(self, record: RunRecord) -> None:
        """Persist ``record`` under ``record.name``."""
        ...


class InMemoryCacheStore:
    """Process-local store; records vanish when the process exits."""

    def __init__(self) -> None:
        self._records: dict[str, RunRecord] = {}
        self._lock = Lock()

    def load(self, name: str) -> RunRecord | None:
        with self._lock:
            return self._records.get(name)

    def save(self, record: RunRecord) -> None:
        with self._lock:
            self._records[record.name] = record

    def __len__(self) -> int:
        return len(self._records)


class JsonFileCacheStore:
    """Persist one JSON document per linter below ``directory``."""

    def __init__(self, directory: Path) -> None:
        self._dir = directory

    @property
    def directory(self) -> Path:
        return self._dir

    def load(self, name: str) -> RunRecord | None:
        entry_path = self._entry_path(name)
        if not entry_path.is_file():
            return None
        try:
            record = RunRecord.model_validate(json.loads(entry_path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            LOGGER.debug("ignoring unreadable cache entry %s: %s", entry_path, exc)
            return None
        if record.name != name:
            return None
        return record

    def save(self, record: RunRecord) -> None:
        entry_path = self._entry_path(record.name)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            entry_path.write_text(json.dumps(record.model_dump(), indent=2), encoding="utf-8")
        except OSError as exc:
            # Cache writes are best-effort.
            LOGGER.debug("cannot write cache entry %s: %s", entry_path, exc)

    def _entry_path(self, name: str) -> Path:
        digest = hashlib.sha256(name.encode("utf-8")).hexdigest()
        return self._dir / f"{digest}.json"


__all__ = ["CacheStore", "InMemoryCacheStore", "JsonFileCacheStore", "RunRecord"]
