"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper (same as expenses/store.py).
AccountStore is the repository; _row_to_account is the mapper.
Route and dependency code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Emails are normalized (strip + lower) on the way in AND on lookup, and the
  column carries a UNIQUE constraint. Signup does not check-then-insert: the
  INSERT itself is the check, so two concurrent signups for one address leave
  exactly one row and one ConflictError.

Layer rule: no imports from api/ or expenses/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import Account
from core.db import connect, make_engine
from core.errors import ConflictError

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("role", String(30), nullable=False, server_default="user"),
    Column("created_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore(settings.database_url)
        account = store.create_account(Account(email="a@b.c", password_hash=hash_password("secret")))
        account = store.get_by_email("A@B.c")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def create_account(self, account: Account) -> Account:
        """Insert a new account and return it with id and created_at filled in.

        Raises ConflictError if the normalized email is already registered.
        """
        with connect(self.engine) as conn:
            try:
                row = conn.execute(
                    _users.insert()
                    .values(
                        email=normalize_email(account.email),
                        password_hash=account.password_hash,
                        role=account.role,
                        created_at=_now_iso(),
                    )
                    .returning(*_users.c)
                ).fetchone()
                conn.commit()
            except IntegrityError as exc:
                conn.rollback()
                raise ConflictError("Email already exists") from exc
        return _row_to_account(row)

    def get_by_email(self, email: str) -> Account | None:
        """Look up an account by normalized email. Returns None if not found."""
        with connect(self.engine) as conn:
            row = conn.execute(_users.select().where(_users.c.email == normalize_email(email))).fetchone()
        return _row_to_account(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with connect(self.engine) as conn:
            conn.execute(_users.select().limit(1)).fetchall()
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        role=row.role,
        created_at=row.created_at,
    )
