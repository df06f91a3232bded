"""
api/routes/expenses.py -- Expense record routes.

Routes (in registration order to avoid FastAPI path capture conflicts):
  POST   /expenses                    -- create a record owned by the caller
  GET    /expenses                    -- list the caller's records, newest first
  GET    /expenses/category-summary   -- per-category totals
  GET    /expenses/total              -- sum of all amounts (0 when empty)
  GET    /expenses/filter             -- ?category=&startDate=&endDate=
  GET    /expenses/{expense_id}       -- one record
  PUT    /expenses/{expense_id}       -- replace a record
  DELETE /expenses/{expense_id}       -- delete a record

Ownership: every handler passes ctx.owner_id -- taken from the verified token,
never from the request -- to ExpenseStore, which ANDs it into the statement.
A record that belongs to someone else and a record that does not exist both
produce the same 404.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response

from api.models import CategoryTotalResponse, ExpenseCreate, ExpenseResponse, ExpenseUpdate, TotalResponse
from auth.dependencies import require_identity
from auth.models import RequestContext
from core.errors import ValidationError
from expenses.models import ExpenseChanges, ExpenseFilter, NewExpense
from expenses.store import ExpenseStore

# All expense routes require authentication.
# Router-level dependency applies to every route registered on this router;
# handlers also declare it to receive the RequestContext (FastAPI caches the
# dependency, so the token is verified once per request).
router = APIRouter(prefix="/expenses", dependencies=[Depends(require_identity)])


def _store(request: Request) -> ExpenseStore:
    return request.app.state.expense_store


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.post("", response_model=ExpenseResponse, status_code=201)
def create_expense(
    request: Request,
    body: ExpenseCreate,
    ctx: RequestContext = Depends(require_identity),
) -> ExpenseResponse:
    """Record a new expense for the caller."""
    expense = _store(request).create(
        ctx.owner_id,
        NewExpense(description=body.description, amount=body.amount, category=body.category, date=body.date),
    )
    return ExpenseResponse.from_expense(expense)


@router.get("", response_model=list[ExpenseResponse])
def list_expenses(request: Request, ctx: RequestContext = Depends(require_identity)) -> list[ExpenseResponse]:
    """Return all of the caller's expenses, most recent first."""
    return [ExpenseResponse.from_expense(e) for e in _store(request).list_for_owner(ctx.owner_id)]


# ---------------------------------------------------------------------------
# Aggregates and filter (must be before /{expense_id})
# ---------------------------------------------------------------------------


@router.get("/category-summary", response_model=list[CategoryTotalResponse])
def category_summary(
    request: Request, ctx: RequestContext = Depends(require_identity)
) -> list[CategoryTotalResponse]:
    """Return the caller's spending per category, largest first. Empty list when none."""
    return [CategoryTotalResponse.from_total(row) for row in _store(request).category_summary(ctx.owner_id)]


@router.get("/total", response_model=TotalResponse)
def total(request: Request, ctx: RequestContext = Depends(require_identity)) -> TotalResponse:
    """Return the sum of the caller's expenses. Always a number, 0 when none."""
    return TotalResponse(total=_store(request).total_for_owner(ctx.owner_id))


@router.get("/filter", response_model=list[ExpenseResponse])
def filter_expenses(
    request: Request,
    category: Optional[str] = Query(default=None, max_length=50),
    start_date: Optional[dt.date] = Query(default=None, alias="startDate"),
    end_date: Optional[dt.date] = Query(default=None, alias="endDate"),
    ctx: RequestContext = Depends(require_identity),
) -> list[ExpenseResponse]:
    """Return the caller's expenses matching every filter that is supplied.

    Dates are inclusive (YYYY-MM-DD). An empty category is treated as absent.
    """
    if start_date and end_date and start_date > end_date:
        raise ValidationError("startDate must not be after endDate.")
    criteria = ExpenseFilter(category=category or None, start_date=start_date, end_date=end_date)
    return [ExpenseResponse.from_expense(e) for e in _store(request).filter_for_owner(ctx.owner_id, criteria)]


# ---------------------------------------------------------------------------
# Single record
# ---------------------------------------------------------------------------


@router.get("/{expense_id}", response_model=ExpenseResponse)
def get_expense(request: Request, expense_id: int, ctx: RequestContext = Depends(require_identity)) -> ExpenseResponse:
    return ExpenseResponse.from_expense(_store(request).get_for_owner(ctx.owner_id, expense_id))


@router.put("/{expense_id}", response_model=ExpenseResponse)
def update_expense(
    request: Request,
    expense_id: int,
    body: ExpenseUpdate,
    ctx: RequestContext = Depends(require_identity),
) -> ExpenseResponse:
    """Replace description, amount and category of one of the caller's expenses.

    One UPDATE with id AND owner in the WHERE clause; zero rows -> 404.
    """
    expense = _store(request).update_for_owner(
        ctx.owner_id,
        expense_id,
        ExpenseChanges(description=body.description, amount=body.amount, category=body.category, date=body.date),
    )
    return ExpenseResponse.from_expense(expense)


@router.delete("/{expense_id}", status_code=204)
def delete_expense(request: Request, expense_id: int, ctx: RequestContext = Depends(require_identity)) -> Response:
    """Delete one of the caller's expenses. Zero rows -> 404."""
    _store(request).delete_for_owner(ctx.owner_id, expense_id)
    return Response(status_code=204)
