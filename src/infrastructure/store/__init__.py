# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Row store access: predicates, query compilation and the store adapter.

Example:
    from src.infrastructure.store import Equals, In, RowQuery, RowStore

    store = RowStore(sessionmaker)
    rows = await store.fetch(
        RowQuery("profiles", columns=("id",), predicates=(Equals("role", "student"),))
    )
"""

from src.infrastructure.store.predicates import (
    AnyOf,
    Equals,
    ILike,
    In,
    Predicate,
    Range,
    contains_pattern,
    prefix_pattern,
)
from src.infrastructure.store.query import Order, RowQuery, compile_count, compile_query
from src.infrastructure.store.row_store import RowStore

__all__ = [
    # Predicates
    "Predicate",
    "Equals",
    "In",
    "Range",
    "ILike",
    "AnyOf",
    "contains_pattern",
    "prefix_pattern",
    # Queries
    "RowQuery",
    "Order",
    "compile_query",
    "compile_count",
    # Store
    "RowStore",
]
