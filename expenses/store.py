"""
expenses/store.py -- SQLAlchemy-backed persistence layer for expense records.

Uses SQLAlchemy Core (not ORM) so the dataclasses in expenses/models.py remain
the authoritative domain representation. Swapping SQLite for PostgreSQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. ExpenseStore is the repository; _row_to_expense
is the mapper. Route handlers never touch SQL directly.

Authorization: every public method takes owner_id first and builds its WHERE
clause from an OwnerScope (expenses/scope.py). Update and delete are single
conditioned statements -- "wrong id" and "someone else's id" both match zero
rows and both raise NotFoundError, so the response never reveals that another
account's record exists.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ExpenseStore(settings.database_url)
    expense = store.create(owner_id, NewExpense(description="Lunch", amount=Decimal("12.50"), category="food"))
    rows = store.filter_for_owner(owner_id, ExpenseFilter(category="food"))
    store.close()
"""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Column, Date, Integer, MetaData, Numeric, String, Table, Text, func, select
from sqlalchemy.engine import Engine

from core.db import connect, make_engine
from core.errors import NotFoundError
from expenses.models import CategoryTotal, Expense, ExpenseChanges, ExpenseFilter, NewExpense
from expenses.scope import OwnerScope

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_expenses = Table(
    "expenses",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("owner_id", Integer, nullable=False, index=True),
    Column("description", Text, nullable=False),
    Column("amount", Numeric(12, 2), nullable=False),
    Column("category", String(50), nullable=False),
    Column("date", Date, nullable=False),
    Column("created_at", String(32), nullable=False),
)

# Most recent first; id breaks ties between rows written in the same instant.
_ORDER = (_expenses.c.created_at.desc(), _expenses.c.id.desc())


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _today() -> date:
    return datetime.now(timezone.utc).date()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ExpenseStore:
    """Repository for Expense records, always scoped to one owner per call."""

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        metadata.create_all(self.engine)

    def _scope(self, owner_id: int) -> OwnerScope:
        return OwnerScope(_expenses, owner_id)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, owner_id: int, new: NewExpense) -> Expense:
        """Insert a record owned by owner_id and return it with id and created_at."""
        if owner_id is None:
            raise ValueError("create() requires an owner_id.")
        with connect(self.engine) as conn:
            row = conn.execute(
                _expenses.insert()
                .values(
                    owner_id=owner_id,
                    description=new.description,
                    amount=new.amount,
                    category=new.category,
                    date=new.date or _today(),
                    created_at=_now_iso(),
                )
                .returning(*_expenses.c)
            ).fetchone()
            conn.commit()
        return _row_to_expense(row)

    def update_for_owner(self, owner_id: int, expense_id: int, changes: ExpenseChanges) -> Expense:
        """Replace description, amount and category (and date, if given).

        Raises NotFoundError when no row matches both id and owner.
        """
        values = {
            "description": changes.description,
            "amount": changes.amount,
            "category": changes.category,
        }
        if changes.date is not None:
            values["date"] = changes.date
        stmt = (
            _expenses.update()
            .where(self._scope(owner_id).with_id(expense_id).where())
            .values(**values)
            .returning(*_expenses.c)
        )
        with connect(self.engine) as conn:
            row = conn.execute(stmt).fetchone()
            conn.commit()
        if row is None:
            raise NotFoundError("Expense not found.")
        return _row_to_expense(row)

    def delete_for_owner(self, owner_id: int, expense_id: int) -> None:
        """Delete one record. Raises NotFoundError when no row matches both id and owner."""
        stmt = _expenses.delete().where(self._scope(owner_id).with_id(expense_id).where())
        with connect(self.engine) as conn:
            result = conn.execute(stmt)
            conn.commit()
        if result.rowcount == 0:
            raise NotFoundError("Expense not found.")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_for_owner(self, owner_id: int, expense_id: int) -> Expense:
        stmt = _expenses.select().where(self._scope(owner_id).with_id(expense_id).where())
        with connect(self.engine) as conn:
            row = conn.execute(stmt).fetchone()
        if row is None:
            raise NotFoundError("Expense not found.")
        return _row_to_expense(row)

    def list_for_owner(self, owner_id: int) -> list[Expense]:
        """Return all of the owner's records, most recent first."""
        return self.filter_for_owner(owner_id, ExpenseFilter())

    def filter_for_owner(self, owner_id: int, criteria: ExpenseFilter) -> list[Expense]:
        """Return the owner's records matching every criterion that is set.

        start_date and end_date are inclusive. Unset criteria add nothing to
        the WHERE clause.
        """
        scope = (
            self._scope(owner_id)
            .equals("category", criteria.category)
            .on_or_after("date", criteria.start_date)
            .on_or_before("date", criteria.end_date)
        )
        stmt = _expenses.select().where(scope.where()).order_by(*_ORDER)
        with connect(self.engine) as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_expense(r) for r in rows]

    # ------------------------------------------------------------------
    # Aggregates
    # ------------------------------------------------------------------

    def category_summary(self, owner_id: int) -> list[CategoryTotal]:
        """Return per-category sums for the owner, largest total first."""
        total = func.sum(_expenses.c.amount).label("total")
        stmt = (
            select(_expenses.c.category, total)
            .where(self._scope(owner_id).where())
            .group_by(_expenses.c.category)
            .order_by(total.desc(), _expenses.c.category)
        )
        with connect(self.engine) as conn:
            rows = conn.execute(stmt).fetchall()
        return [CategoryTotal(category=row.category, total=_to_decimal(row.total)) for row in rows]

    def total_for_owner(self, owner_id: int) -> Decimal:
        """Return the sum of all the owner's amounts; Decimal("0") when there are none."""
        stmt = select(func.coalesce(func.sum(_expenses.c.amount), 0)).where(self._scope(owner_id).where())
        with connect(self.engine) as conn:
            value = conn.execute(stmt).scalar()
        return _to_decimal(value)

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _to_decimal(value) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value.quantize(Decimal("0.01"))
    # SQLite hands SUM() back as float/int; go through str to avoid binary noise.
    return Decimal(str(value)).quantize(Decimal("0.01"))


def _row_to_expense(row) -> Expense:
    return Expense(
        id=row.id,
        owner_id=row.owner_id,
        description=row.description,
        amount=_to_decimal(row.amount),
        category=row.category,
        date=row.date,
        created_at=row.created_at,
    )
