# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Row queries and their compilation to SQLAlchemy statements.

A RowQuery names a table, the columns to return, a tuple of predicates,
ordering and pagination. compile_query() is the only place that turns
predicates into SQL; compile_count() reuses it for exact counts without
fetching rows.

Example:
    >>> query = RowQuery(
    ...     table="profiles",
    ...     columns=("id", "class_id"),
    ...     predicates=(Equals("role", "student"), In("class_id", ["c1"])),
    ...     order_by=(Order("created_at", descending=True),),
    ... )
    >>> stmt = compile_query(query)
"""

from dataclasses import dataclass, replace
from typing import Any

from sqlalchemy import Select, and_, false, func, or_, select
from sqlalchemy.orm import InstrumentedAttribute

from src.infrastructure.database.models import TABLES
from src.infrastructure.store.predicates import AnyOf, Equals, ILike, In, Predicate, Range


@dataclass(frozen=True)
class Order:
    """Ordering on one column."""

    column: str
    descending: bool = False


@dataclass(frozen=True)
class RowQuery:
    """An immutable description of a single-table read.

    Attributes:
        table: Table name (key of TABLES).
        columns: Columns to return. Empty means every mapped column.
        predicates: Filters, all of which must hold.
        order_by: Ordering, applied in sequence.
        limit: Maximum rows to return.
        offset: Rows to skip.
    """

    table: str
    columns: tuple[str, ...] = ()
    predicates: tuple[Predicate, ...] = ()
    order_by: tuple[Order, ...] = ()
    limit: int | None = None
    offset: int | None = None

    def where(self, *predicates: Predicate) -> "RowQuery":
        """Return a copy with extra predicates AND'ed on."""
        return replace(self, predicates=self.predicates + tuple(predicates))


def _model(table: str) -> Any:
    try:
        return TABLES[table]
    except KeyError:
        raise ValueError(f"Unknown table '{table}'") from None


def _column(model: Any, name: str) -> InstrumentedAttribute:
    if name not in model.__table__.columns:
        raise ValueError(f"Unknown column '{name}' on table '{model.__tablename__}'")
    return getattr(model, name)


def _compile_predicate(model: Any, predicate: Predicate):
    if isinstance(predicate, Equals):
        column = _column(model, predicate.column)
        if predicate.value is None:
            return column.is_(None)
        return column == predicate.value
    if isinstance(predicate, In):
        if not predicate.values:
            return false()
        return _column(model, predicate.column).in_(predicate.values)
    if isinstance(predicate, Range):
        column = _column(model, predicate.column)
        clauses = []
        if predicate.lower is not None:
            clauses.append(column >= predicate.lower)
        if predicate.upper is not None:
            clauses.append(column <= predicate.upper)
        return and_(*clauses)
    if isinstance(predicate, ILike):
        return _column(model, predicate.column).ilike(predicate.pattern, escape="\\")
    if isinstance(predicate, AnyOf):
        return or_(*(_compile_predicate(model, p) for p in predicate.predicates))
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _filtered(model: Any, stmt: Select, predicates: tuple[Predicate, ...]) -> Select:
    if predicates:
        stmt = stmt.where(*(_compile_predicate(model, p) for p in predicates))
    return stmt


def compile_query(query: RowQuery) -> Select:
    """Compile a RowQuery into a SELECT statement.

    Args:
        query: Query to compile.

    Returns:
        SQLAlchemy Select returning the requested columns.

    Raises:
        ValueError: If the table or a column is unknown.
    """
    model = _model(query.table)
    if query.columns:
        stmt = select(*(_column(model, name) for name in query.columns))
    else:
        stmt = select(*model.__table__.columns)

    stmt = _filtered(model, stmt, query.predicates)

    for order in query.order_by:
        column = _column(model, order.column)
        stmt = stmt.order_by(column.desc() if order.descending else column.asc())

    if query.limit is not None:
        stmt = stmt.limit(query.limit)
    if query.offset:
        stmt = stmt.offset(query.offset)
    return stmt


def compile_count(query: RowQuery) -> Select:
    """Compile an exact ``count(*)`` over the query's predicates.

    Columns, ordering and pagination are ignored.
    """
    model = _model(query.table)
    stmt = select(func.count()).select_from(model)
    return _filtered(model, stmt, query.predicates)
