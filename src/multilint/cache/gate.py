# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Decide whether a linter can be skipped because its inputs are unchanged.

Two change detectors are supported. Timestamp mode compares the newest
modification time in the file set against the recorded one; it is cheap but
misses restores that reset mtimes. Hash mode compares a sha256 over the
ordered file contents; it is exact but reads every file. Both modes also
compare the linter fingerprint and the file list itself, and only ever skip
after a recorded successful run.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from threading import Lock
from typing import Final

from ..config.models import LinterSettings
from ..models import RunOutcome
from .store import CacheStore, RunRecord

LOGGER = logging.getLogger(__name__)

_CHUNK_SIZE: Final[int] = 1 << 16
_FIELD_DELIMITER: Final[bytes] = b"\0"


def linter_fingerprint(settings: LinterSettings, work_dir: Path) -> str:
    """Return a digest of everything besides file contents that affects a run."""

    hasher = hashlib.sha256()
    for part in (
        settings.command,
        *settings.options,
        "::",
        *settings.formats,
        "::",
        str(work_dir.resolve()),
        str(settings.single_file),
        str(settings.check_hash),
    ):
        hasher.update(part.encode("utf-8"))
        hasher.update(_FIELD_DELIMITER)
    return hasher.hexdigest()


@dataclass(frozen=True, slots=True)
class FileSnapshot:
    """Observed state of a linter's file set."""

    files_digest: str
    latest_mtime_ns: int
    content_digest: str | None


def _files_digest(files: Sequence[Path]) -> str:
    hasher = hashlib.sha256()
    for path in files:
        hasher.update(str(path).encode("utf-8"))
        hasher.update(_FIELD_DELIMITER)
    return hasher.hexdigest()


def _content_digest(files: Sequence[Path]) -> str:
    hasher = hashlib.sha256()
    for path in files:
        hasher.update(str(path).encode("utf-8"))
        hasher.update(_FIELD_DELIMITER)
        with path.open("rb") as handle:
            while chunk := handle.read(_CHUNK_SIZE):
                hasher.update(chunk)
        hasher.update(_FIELD_DELIMITER)
    return hasher.hexdigest()


def take_snapshot(files: Sequence[Path], *, check_hash: bool) -> FileSnapshot | None:
    """Return the current state of ``files`` or ``None`` when any is unreadable."""

    try:
        latest = max((path.stat().st_mtime_ns for path in files), default=0)
        content = _content_digest(files) if check_hash else None
    except OSError as exc:
        LOGGER.debug("cannot snapshot file set: %s", exc)
        return None
    return FileSnapshot(files_digest=_files_digest(files), latest_mtime_ns=latest, content_digest=content)


class CacheGate:
    """Consult and update a :class:`CacheStore` on behalf of the orchestrator."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store
        self._locks: dict[str, Lock] = {}
        self._locks_guard = Lock()

    @property
    def store(self) -> CacheStore:
        return self._store

    def _lock_for(self, name: str) -> Lock:
        with self._locks_guard:
            return self._locks.setdefault(name, Lock())

    def should_run(
        self,
        name: str,
        files: Sequence[Path],
        check_hash: bool,
        *,
        fingerprint: str = "",
    ) -> bool:
        """Return ``False`` only when the last successful run is still valid.

        Args:
            name: Linter name used as the store key.
            files: Absolute paths of the resolved file set, in order.
            check_hash: Compare content digests instead of timestamps.
            fingerprint: Digest of the linter's command configuration.

        Returns:
            bool: ``True`` when the linter must run.
        """

        with self._lock_for(name):
            record = self._store.load(name)
        if record is None or not record.succeeded:
            return True
        if record.fingerprint != fingerprint:
            LOGGER.debug("%s: configuration changed", name)
            return True
        snapshot = take_snapshot(files, check_hash=check_hash)
        if snapshot is None or snapshot.files_digest != record.files_digest:
            LOGGER.debug("%s: file set changed", name)
            return True
        if check_hash:
            changed = snapshot.content_digest != record.content_digest
        else:
            changed = snapshot.latest_mtime_ns > record.latest_mtime_ns
        if changed:
            LOGGER.debug("%s: inputs changed since last successful run", name)
        return changed

    def record_run(
        self,
        name: str,
        files: Sequence[Path],
        outcome: RunOutcome,
        *,
        check_hash: bool = False,
        fingerprint: str = "",
    ) -> None:
        """Remember the state of ``files`` after ``outcome``.

        A failed outcome replaces any earlier record with an unsuccessful one
        so that the next invocation reruns the linter.
        """

        snapshot = take_snapshot(files, check_hash=check_hash) if outcome.succeeded else None
        if snapshot is None:
            record = RunRecord(name=name, fingerprint=fingerprint, files_digest="", succeeded=False)
        else:
            record = RunRecord(
                name=name,
                fingerprint=fingerprint,
                files_digest=snapshot.files_digest,
                latest_mtime_ns=snapshot.latest_mtime_ns,
                content_digest=snapshot.content_digest,
                succeeded=True,
            )
        with self._lock_for(name):
            self._store.save(record)


__all__ = ["CacheGate", "FileSnapshot", "linter_fingerprint", "take_snapshot"]
