"""
auth/tokens.py -- Access token issuance and verification.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (account id as a string, per
       RFC 7519), role, email, iat and exp. The signing key never appears in
       the token; verification needs only the token and the key.

  TokenService is constructed once in the application lifespan from Settings
       and stored on app.state. It holds nothing mutable, so concurrent
       requests share it without locking. Tests build their own instance with
       a fabricated secret.

  verify() raises instead of returning None so the two failure kinds stay
       separable: TokenExpiredError for a token past exp, TokenInvalidError for
       everything else. The identity dependency logs which one it was and sends
       the client the same 401 for both.

  Stateless: there is no revocation list. A leaked token stays valid until
       exp. Keep expire_seconds short (default 1 hour).

Layer rule: no imports from api/ or expenses/.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from auth.models import IdentityClaim
from core.errors import TokenExpiredError, TokenInvalidError

_ALGORITHM = "HS256"

_DECODE_OPTIONS = {
    "require_exp": True,
    "require_iat": True,
    "require_sub": True,
}


class TokenService:
    """Issues and verifies signed, time-limited identity tokens.

    Usage:
        tokens = TokenService(settings.secret_key, settings.token_expire_seconds)
        token = tokens.issue(account.id, account.role, account.email)
        claim = tokens.verify(token)
    """

    def __init__(self, secret_key: str, expire_seconds: int = 3600, algorithm: str = _ALGORITHM) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a signing secret.")
        self._secret_key = secret_key
        self._algorithm = algorithm
        self.expire_seconds = expire_seconds

    def issue(self, subject_id: int, role: str, email: str, now: datetime | None = None) -> str:
        """Encode a signed JWT for the given identity.

        now defaults to the current UTC time; tests pass an earlier instant to
        mint tokens that are already expired.
        """
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            "sub": str(subject_id),
            "role": role,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    def verify(self, token: str) -> IdentityClaim:
        """Decode and verify a JWT into an IdentityClaim.

        Raises TokenExpiredError if exp has passed, TokenInvalidError on any
        other problem (signature, structure, missing or mistyped claims).
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options=_DECODE_OPTIONS,
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError() from exc
        except JWTError as exc:
            raise TokenInvalidError(str(exc)) from exc

        role = payload.get("role")
        email = payload.get("email")
        if not isinstance(role, str) or not isinstance(email, str):
            raise TokenInvalidError("Token is missing identity claims.")
        try:
            subject_id = int(payload["sub"])
            issued_at = datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
            expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
        except (TypeError, ValueError, OverflowError) as exc:
            raise TokenInvalidError("Token claims have the wrong type.") from exc

        return IdentityClaim(
            subject_id=subject_id,
            role=role,
            email=email,
            issued_at=issued_at,
            expires_at=expires_at,
        )
