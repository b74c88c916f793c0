# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Run-record caching used to skip unchanged linters."""

from __future__ import annotations

from .gate import CacheGate, FileSnapshot, linter_fingerprint, take_snapshot
from .store import CacheStore, InMemoryCacheStore, JsonFileCacheStore, RunRecord

__all__ = [
    "CacheGate",
    "CacheStore",
    "FileSnapshot",
    "InMemoryCacheStore",
    "JsonFileCacheStore",
    "RunRecord",
    "linter_fingerprint",
    "take_snapshot",
]
