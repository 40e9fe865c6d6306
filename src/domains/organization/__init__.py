# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Organization domain package.

This package provides the organization hierarchy:
- Tree construction from flat college/major/class rows
- Reference-data listings
- Student number previews
"""

from src.domains.organization.service import OrganizationService
from src.domains.organization.tree import build_organization_tree

__all__ = [
    "OrganizationService",
    "build_organization_tree",
]
