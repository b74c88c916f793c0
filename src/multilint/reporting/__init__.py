# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Output formats for linter outcomes."""

from __future__ import annotations

from .printers import RENDERERS, FormatRenderer, OutputFormat, Printer, gnu_line, jsonl_record

__all__ = ["FormatRenderer", "OutputFormat", "Printer", "RENDERERS", "gnu_line", "jsonl_record"]
