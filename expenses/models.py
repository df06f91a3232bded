"""
expenses/models.py -- Domain dataclasses for expense records.

These are pure data containers with zero logic. Ownership enforcement and
aggregation live in expenses/scope.py and expenses/store.py.

owner_id is deliberately absent from NewExpense and ExpenseChanges: the
owner of a record always comes from the verified identity, so there is no
field through which a request body could name a different one.
"""

import datetime as dt
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass
class Expense:
    """A stored expense record.

    date is the day the money was spent; created_at is when the row was
    written (ISO 8601, set by the store).
    """

    id: int
    owner_id: int
    description: str
    amount: Decimal
    category: str
    date: dt.date
    created_at: str


@dataclass
class NewExpense:
    description: str
    amount: Decimal
    category: str
    date: Optional[dt.date] = None  # None -> today (UTC)


@dataclass
class ExpenseChanges:
    """Replacement values for PUT. date=None keeps the stored date."""

    description: str
    amount: Decimal
    category: str
    date: Optional[dt.date] = None


@dataclass
class ExpenseFilter:
    """Optional filter criteria, ANDed with the owner predicate."""

    category: Optional[str] = None
    start_date: Optional[dt.date] = None  # inclusive
    end_date: Optional[dt.date] = None  # inclusive


@dataclass
class CategoryTotal:
    category: str
    total: Decimal
