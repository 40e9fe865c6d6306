# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Row filter predicates.

Predicates are immutable values. A query holds a tuple of them, all of
which must hold (logical AND); AnyOf expresses an OR group. They are
compiled to SQL in one place, src.infrastructure.store.query.

Example:
    >>> predicates = (
    ...     Equals("role", "student"),
    ...     In("class_id", ["c1", "c2"]),
    ...     AnyOf((ILike("full_name", "%li%"), ILike("email", "%li%"))),
    ... )
"""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Equals:
    """Column equals value."""

    column: str
    value: Any


@dataclass(frozen=True)
class In:
    """Column value is one of ``values``. An empty set matches nothing."""

    column: str
    values: tuple[Any, ...]

    def __init__(self, column: str, values: Iterable[Any]) -> None:
        object.__setattr__(self, "column", column)
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class Range:
    """Inclusive range on a column; either bound may be omitted."""

    column: str
    lower: Any = None
    upper: Any = None

    def __post_init__(self) -> None:
        if self.lower is None and self.upper is None:
            raise ValueError(f"Range on '{self.column}' needs at least one bound")


@dataclass(frozen=True)
class ILike:
    """Case-insensitive LIKE pattern match (``%`` and ``_`` wildcards)."""

    column: str
    pattern: str


@dataclass(frozen=True)
class AnyOf:
    """At least one of the nested predicates holds."""

    predicates: tuple["Predicate", ...]

    def __init__(self, predicates: Iterable["Predicate"]) -> None:
        predicates = tuple(predicates)
        if not predicates:
            raise ValueError("AnyOf needs at least one predicate")
        object.__setattr__(self, "predicates", predicates)


Predicate = Union[Equals, In, Range, ILike, AnyOf]


def contains_pattern(text: str) -> str:
    """Build an ILike pattern matching ``text`` anywhere, escaping wildcards."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def prefix_pattern(prefix: str) -> str:
    """Build an ILike pattern matching values starting with ``prefix``."""
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"
