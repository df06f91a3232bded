"""
auth/passwords.py -- Password hashing, verification and login checks.

Security design decisions:
  bcrypt, used directly (no passlib wrapper). The work factor is a parameter
  so the lifespan can pass Settings.bcrypt_rounds; the default of 12 is what
  production runs with. The digest is in modular-crypt form
  ($2b$<rounds>$<22-char salt><31-char hash>), so verification needs nothing
  but the digest itself.

  verify_password() never raises. A wrong password and a corrupt digest both
  return False, and the corrupt-digest path burns one bcrypt computation on a
  dummy digest so the two are not separable by response time.

  authenticate_account() always runs bcrypt, even for an unknown email, for
  the same reason. The login route does tell the caller which check failed --
  email existence is already disclosed by signup.

Layer rule: no imports from api/ or expenses/.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt

from core.errors import AccountNotFoundError, CredentialFormatError, IncorrectPasswordError, ValidationError

if TYPE_CHECKING:
    from auth.models import Account
    from auth.store import AccountStore

logger = logging.getLogger("expenseapi.auth")

DEFAULT_ROUNDS = 12

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72

_DIGEST_RE = re.compile(r"^\$(?P<algorithm>2[aby])\$(?P<rounds>\d{2})\$(?P<salt>[./A-Za-z0-9]{22})[./A-Za-z0-9]{31}$")


@dataclass(frozen=True)
class DigestInfo:
    algorithm: str
    rounds: int
    salt: str


def inspect_digest(digest: str) -> DigestInfo:
    """Parse a bcrypt digest into its parts. Raises CredentialFormatError if malformed."""
    match = _DIGEST_RE.match(digest or "")
    if match is None:
        raise CredentialFormatError()
    rounds = int(match.group("rounds"))
    if not 4 <= rounds <= 31:
        raise CredentialFormatError(f"Unsupported bcrypt cost: {rounds}")
    return DigestInfo(algorithm=match.group("algorithm"), rounds=rounds, salt=match.group("salt"))


def hash_password(plain: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Return a salted bcrypt digest of the plaintext password."""
    secret = plain.encode("utf-8")
    if len(secret) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


@lru_cache(maxsize=8)
def _dummy_digest(rounds: int) -> str:
    # One per cost factor so the dummy check costs exactly what a real one does.
    return hash_password("expenseapi_timing_dummy", rounds=rounds)


def verify_password(plain: str, digest: str, rounds: int = DEFAULT_ROUNDS) -> bool:
    """Return True if the plaintext matches the digest, False otherwise.

    rounds is the cost of the dummy check run when the digest is unreadable;
    pass the configured work factor so that path costs what a real check does.
    """
    secret = plain.encode("utf-8")
    try:
        info = inspect_digest(digest)
    except CredentialFormatError:
        logger.warning("Malformed password digest encountered during verification")
        bcrypt.checkpw(secret[:MAX_PASSWORD_BYTES], _dummy_digest(rounds).encode("utf-8"))
        return False
    if len(secret) > MAX_PASSWORD_BYTES:
        # Could never have been hashed; still pay the cost of a real check.
        bcrypt.checkpw(secret[:MAX_PASSWORD_BYTES], _dummy_digest(info.rounds).encode("utf-8"))
        return False
    return bcrypt.checkpw(secret, digest.encode("utf-8"))


def authenticate_account(store: AccountStore, email: str, password: str, rounds: int = DEFAULT_ROUNDS) -> Account:
    """Return the account whose credentials match.

    Raises AccountNotFoundError or IncorrectPasswordError. bcrypt runs on
    both paths; for an unknown email it runs against a dummy digest of the
    configured cost.
    """
    account = store.get_by_email(email)
    if account is None:
        verify_password(password, _dummy_digest(rounds))
        raise AccountNotFoundError()
    if not verify_password(password, account.password_hash, rounds=rounds):
        raise IncorrectPasswordError()
    return account
