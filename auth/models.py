"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic beyond trivial accessors).
Mirrors expenses/models.py -- dataclasses own domain shape; stores and routes
do the work.

Layer rule: no imports from api/ or expenses/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from core.errors import AuthenticationError


@dataclass
class Account:
    """A registered user.

    email is stored normalized (stripped, lower-cased); the UNIQUE constraint
    on that column is what guarantees one account per address.

    id is None before the record is written to the database.
    """

    email: str
    password_hash: str
    role: str = "user"
    id: int | None = None
    created_at: str | None = None  # ISO 8601, set by store on insert


@dataclass(frozen=True)
class IdentityClaim:
    """The verified payload of an access token. Never persisted."""

    subject_id: int
    role: str
    email: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class RequestContext:
    """Per-request authentication state.

    Built only by auth.dependencies.require_identity and immutable afterwards.
    Route handlers read owner_id instead of poking at request attributes.
    """

    identity: IdentityClaim | None = None

    @property
    def owner_id(self) -> int:
        if self.identity is None:
            raise AuthenticationError()
        return self.identity.subject_id
