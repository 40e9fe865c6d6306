# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Authentication domain services.

Callers are authenticated upstream; this package only turns the asserted
identity into a per-request AccessContext.

Exports:
    AccessContext: Caller identity plus the row store capability.
    CurrentUser: Authenticated caller (id and role).
"""

from src.domains.auth.context import AccessContext, CurrentUser

__all__ = [
    "AccessContext",
    "CurrentUser",
]
