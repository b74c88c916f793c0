# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Subprocess execution for linters."""

from __future__ import annotations

from .runner import (
    DEFAULT_ARG_MAX,
    KILL_GRACE_SECONDS,
    XARGS_FAILURE_STATUS,
    ExecutionError,
    LinterTimeoutError,
    ProcessRunner,
    RawOutput,
    argument_budget,
    batch_arguments,
    resolve_executable,
    system_arg_max,
)

__all__ = [
    "DEFAULT_ARG_MAX",
    "ExecutionError",
    "KILL_GRACE_SECONDS",
    "LinterTimeoutError",
    "ProcessRunner",
    "RawOutput",
    "XARGS_FAILURE_STATUS",
    "argument_budget",
    "batch_arguments",
    "resolve_executable",
    "system_arg_max",
]
