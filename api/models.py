"""
API request and response models for Expense API REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py and
expenses/models.py, which own the internal domain representation. Route
handlers map between the two.

Input shape rules (email format, password length, positive amount, field
lengths) live here, so by the time a handler calls into auth/ or expenses/
the values are already well-formed.
"""

import datetime as dt
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, PlainSerializer, StringConstraints, field_validator

from auth.models import IdentityClaim
from auth.passwords import MAX_PASSWORD_BYTES
from expenses.models import CategoryTotal, Expense

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MIN_PASSWORD_LENGTH = 6

# Decimal internally, JSON number on the wire.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]

_Amount = Annotated[Decimal, Field(gt=0, max_digits=12, decimal_places=2)]


# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /auth/signup.

    Only the email is trimmed. The password is hashed exactly as sent.
    """

    email: EmailStr
    password: str = Field(min_length=MIN_PASSWORD_LENGTH)

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /auth/login.

    email is a plain string, not EmailStr: a malformed address simply has no
    account, and the caller gets the same answer as for any unknown email.
    """

    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class TokenResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(TokenResponse):
    success: bool = True


class MeResponse(BaseModel):
    """Response for GET /auth/me -- the verified claim, nothing from the DB."""

    model_config = ConfigDict(frozen=True)

    user_id: int
    email: str
    role: str
    expires_at: str

    @classmethod
    def from_claim(cls, claim: IdentityClaim) -> "MeResponse":
        return cls(
            user_id=claim.subject_id,
            email=claim.email,
            role=claim.role,
            expires_at=claim.expires_at.isoformat(),
        )


# ---------------------------------------------------------------------------
# Expenses -- request models
# ---------------------------------------------------------------------------


class ExpenseCreate(BaseModel):
    """Request body for POST /expenses.

    There is no owner field: any owner_id/user_id key in the body is ignored
    and the record is always owned by the caller.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(min_length=1, max_length=500)
    amount: _Amount
    category: str = Field(min_length=1, max_length=50)
    date: Optional[dt.date] = None


class ExpenseUpdate(ExpenseCreate):
    """Request body for PUT /expenses/{id}. Omitting date keeps the stored one."""


# ---------------------------------------------------------------------------
# Expenses -- response models
# ---------------------------------------------------------------------------


class ExpenseResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    description: str
    amount: Money
    category: str
    date: dt.date
    created_at: str

    @classmethod
    def from_expense(cls, expense: Expense) -> "ExpenseResponse":
        """Build the transport model from a stored Expense (owner_id is not echoed)."""
        return cls(
            id=expense.id,
            description=expense.description,
            amount=expense.amount,
            category=expense.category,
            date=expense.date,
            created_at=expense.created_at,
        )


class CategoryTotalResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    total: Money

    @classmethod
    def from_total(cls, row: CategoryTotal) -> "CategoryTotalResponse":
        return cls(category=row.category, total=row.total)


class TotalResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: Money = Decimal("0")


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None
    errors: Optional[list[dict]] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
