# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for campus-scope.

This package contains domain services that encapsulate business logic.
Every service is built from a per-request AccessContext and reads the
row store through it.

Domains:
    auth: Per-request caller identity and role checks.
    organization: College → Major → Class reference data.
    permission: Teacher grants, scope resolution and narrowing.
    statistics: Batched assessment statistics inside a scope.
    student: Scope-restricted student listings and details.
"""
