"""campus-scope.

Permission-scoped student visibility and assessment statistics over a
College → Major → Class organization.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
