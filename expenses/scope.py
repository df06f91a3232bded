"""
expenses/scope.py -- Owner-scoped predicate builder.

Every statement expenses/store.py sends to the database -- SELECT, UPDATE,
DELETE and the aggregates -- takes its WHERE clause from an OwnerScope. The
scope is seeded with owner_id = <caller> in the constructor and there is no
way to remove it, so a statement built from a scope cannot reach another
account's rows.

Optional fragments are appended only when their value is not None, in call
order. The same inputs therefore always produce the same SQL text, and every
value travels as a bound parameter -- nothing caller-supplied is spliced into
the query string.

Folding ownership into the same predicate as the primary-key lookup (instead
of fetch, compare, then act) leaves no window between the check and the write.

Usage:
    scope = OwnerScope(_expenses, owner_id).equals("category", "food").on_or_after("date", start)
    stmt = _expenses.select().where(scope.where())
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Table, and_
from sqlalchemy.sql.elements import ColumnElement


class OwnerScope:
    """Accumulates WHERE fragments on top of a mandatory owner predicate."""

    def __init__(self, table: Table, owner_id: int, owner_column: str = "owner_id") -> None:
        if owner_id is None:
            raise ValueError("OwnerScope requires an owner_id.")
        self._table = table
        self._clauses: list[ColumnElement[bool]] = [table.c[owner_column] == owner_id]

    def with_id(self, record_id: int) -> OwnerScope:
        self._clauses.append(self._table.c.id == record_id)
        return self

    def equals(self, column: str, value: Any) -> OwnerScope:
        if value is not None:
            self._clauses.append(self._table.c[column] == value)
        return self

    def on_or_after(self, column: str, value: Any) -> OwnerScope:
        if value is not None:
            self._clauses.append(self._table.c[column] >= value)
        return self

    def on_or_before(self, column: str, value: Any) -> OwnerScope:
        if value is not None:
            self._clauses.append(self._table.c[column] <= value)
        return self

    def where(self) -> ColumnElement[bool]:
        """Return the conjunction of all fragments, owner predicate first."""
        return and_(*self._clauses)

    def __len__(self) -> int:
        return len(self._clauses)
