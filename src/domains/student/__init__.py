# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Student domain package.

This package provides scope-restricted student reads:
- Paginated listings with search and organization filters
- Student details with assessment history
"""

from src.domains.student.service import (
    StudentNotFoundError,
    StudentService,
    StudentServiceError,
)

__all__ = [
    "StudentService",
    "StudentServiceError",
    "StudentNotFoundError",
]
