# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Infrastructure layer for external service integrations.

This package contains:
- database: Row store connection pool and table definitions (PostgreSQL)
- store: Predicate queries and the read-only row store adapter
"""
