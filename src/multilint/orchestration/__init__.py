# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Concurrent linter orchestration."""

from __future__ import annotations

from .orchestrator import LinterRunner, Orchestrator, OrchestratorHooks, ResolvedTarget

__all__ = ["LinterRunner", "Orchestrator", "OrchestratorHooks", "ResolvedTarget"]
