# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Configuration models and the hierarchical resolver."""

from __future__ import annotations

from .loader import ConfigResolver, TomlConfigSource, build_config, discover_config_files, load_config, merge_fragments
from .models import ConfigError, GlobalSettings, LinterSettings, MultilintConfig, default_parallel_jobs

__all__ = [
    "ConfigError",
    "ConfigResolver",
    "GlobalSettings",
    "LinterSettings",
    "MultilintConfig",
    "TomlConfigSource",
    "build_config",
    "default_parallel_jobs",
    "discover_config_files",
    "load_config",
    "merge_fragments",
]
