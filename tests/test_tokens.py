"""Unit tests for auth/tokens.py -- JWT issuance and verification.

Covers:
- round-trip preserves subject_id, role, email; expiry is iat + window
- expired tokens raise TokenExpiredError
- tampering, wrong secret, garbage and missing claims raise TokenInvalidError
- the signing secret never appears in the token
"""

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.tokens import TokenService
from core.errors import AuthenticationError, TokenExpiredError, TokenInvalidError

SECRET = "unit-test-secret-0123456789abcdef0123456789"


@pytest.fixture
def tokens() -> TokenService:
    return TokenService(SECRET, expire_seconds=3600)


def _payload(token: str) -> dict:
    segment = token.split(".")[1]
    segment += "=" * (-len(segment) % 4)
    return json.loads(base64.urlsafe_b64decode(segment))


class TestRoundTrip:
    def test_claims_preserved(self, tokens: TokenService) -> None:
        claim = tokens.verify(tokens.issue(42, "user", "alice@example.com"))
        assert claim.subject_id == 42
        assert claim.role == "user"
        assert claim.email == "alice@example.com"

    def test_expiry_window(self, tokens: TokenService) -> None:
        claim = tokens.verify(tokens.issue(1, "admin", "root@example.com"))
        assert claim.expires_at - claim.issued_at == timedelta(seconds=3600)
        assert claim.expires_at > datetime.now(timezone.utc)

    def test_secret_not_in_token(self, tokens: TokenService) -> None:
        token = tokens.issue(7, "user", "bob@example.com")
        assert SECRET not in token
        assert SECRET not in json.dumps(_payload(token))

    def test_subject_is_string_claim(self, tokens: TokenService) -> None:
        assert _payload(tokens.issue(7, "user", "bob@example.com"))["sub"] == "7"


class TestExpiry:
    def test_token_older_than_window_is_expired(self, tokens: TokenService) -> None:
        issued = datetime.now(timezone.utc) - timedelta(seconds=3601)
        token = tokens.issue(1, "user", "late@example.com", now=issued)
        with pytest.raises(TokenExpiredError):
            tokens.verify(token)

    def test_token_within_window_is_valid(self, tokens: TokenService) -> None:
        issued = datetime.now(timezone.utc) - timedelta(seconds=3000)
        token = tokens.issue(1, "user", "early@example.com", now=issued)
        assert tokens.verify(token).subject_id == 1

    def test_expired_is_authentication_error(self) -> None:
        assert issubclass(TokenExpiredError, AuthenticationError)
        assert not issubclass(TokenExpiredError, TokenInvalidError)


class TestInvalid:
    def test_wrong_secret(self, tokens: TokenService) -> None:
        other = TokenService("another-secret-0123456789abcdef0123456789")
        with pytest.raises(TokenInvalidError):
            tokens.verify(other.issue(1, "user", "a@example.com"))

    def test_tampered_payload(self, tokens: TokenService) -> None:
        header, _payload_seg, signature = tokens.issue(1, "user", "a@example.com").split(".")
        forged = base64.urlsafe_b64encode(
            json.dumps({"sub": "2", "role": "admin", "email": "a@example.com", "iat": 0, "exp": 9999999999}).encode()
        ).rstrip(b"=").decode()
        with pytest.raises(TokenInvalidError):
            tokens.verify(f"{header}.{forged}.{signature}")

    @pytest.mark.parametrize("garbage", ["garbage", "", "a.b.c", "Bearer x"])
    def test_garbage(self, tokens: TokenService, garbage: str) -> None:
        with pytest.raises(TokenInvalidError):
            tokens.verify(garbage)

    def test_missing_identity_claims(self, tokens: TokenService) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode({"sub": "1", "iat": now, "exp": now + timedelta(hours=1)}, SECRET, algorithm="HS256")
        with pytest.raises(TokenInvalidError):
            tokens.verify(token)

    def test_missing_exp(self, tokens: TokenService) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode({"sub": "1", "role": "user", "email": "a@example.com", "iat": now}, SECRET, algorithm="HS256")
        with pytest.raises(TokenInvalidError):
            tokens.verify(token)

    def test_non_numeric_subject(self, tokens: TokenService) -> None:
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {"sub": "alice", "role": "user", "email": "a@example.com", "iat": now, "exp": now + timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )
        with pytest.raises(TokenInvalidError):
            tokens.verify(token)

    def test_empty_secret_rejected(self) -> None:
        with pytest.raises(ValueError):
            TokenService("")
