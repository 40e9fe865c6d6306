# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Utility functions and helpers for campus-scope.

This package contains cross-cutting utilities:
- logging: Structured logging with structlog
- concurrency: Fail-fast concurrent awaiting
"""

from src.utils.concurrency import gather_or_cancel
from src.utils.logging import bind_context, clear_context, get_logger, setup_logging

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "gather_or_cancel",
]
