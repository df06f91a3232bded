"""
api/routes/auth.py -- Signup, login and identity endpoints.

Routes:
  POST /auth/signup   -- create account; returns a token
  POST /auth/login    -- password login; returns a token
  GET  /auth/me       -- the caller's verified identity (requires auth)

Response contracts for signup and login are fixed by the client:
  signup duplicate  -> 400 {"success": false, "error": "email_exists", "message": ...}
  login failure     -> 401 {"success": false, "error": "Login failed", "message": ...}
The login message says whether the email or the password was wrong. That is
a product decision: signup already discloses whether an email is registered.

Security:
  Signup and login are rate limited per client address (Settings.*_rate_limit).
  Cache-Control: no-store on every response that carries a token.
  bcrypt work happens in these sync handlers, which FastAPI runs in its
  thread pool -- never on the event loop.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_limit, signup_limit
from api.models import LoginRequest, LoginResponse, MeResponse, SignupRequest, TokenResponse
from auth.dependencies import require_identity
from auth.models import Account, RequestContext
from auth.passwords import authenticate_account, hash_password
from auth.store import AccountStore
from auth.tokens import TokenService
from core.config import Settings
from core.errors import AuthenticationError, ConflictError

logger = logging.getLogger("expenseapi.auth")

# Auth policy:
# - POST /auth/signup: public -- rate limited
# - POST /auth/login:  public -- rate limited
# - GET  /auth/me:     requires auth (require_identity)
# @router.post stays outermost: FastAPI must register the slowapi wrapper,
# which is what checks the per-route limits.
router = APIRouter()


def _token_response(content: dict, status_code: int = 200) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=content)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/signup", response_model=TokenResponse)
@limiter.limit(signup_limit)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Register a new account and return an access token.

    The INSERT is the duplicate check (UNIQUE email), so concurrent signups
    for the same address cannot both succeed.
    """
    settings: Settings = request.app.state.settings
    accounts: AccountStore = request.app.state.account_store
    tokens: TokenService = request.app.state.token_service

    password_hash = hash_password(body.password, rounds=settings.bcrypt_rounds)
    try:
        account = accounts.create_account(Account(email=body.email, password_hash=password_hash))
    except ConflictError as exc:
        logger.info("Signup rejected: email already registered")
        return _token_response(
            {"success": False, "error": "email_exists", "message": exc.message},
            status_code=400,
        )

    logger.info("Account %d created", account.id)
    token = tokens.issue(account.id, account.role, account.email)
    return _token_response(TokenResponse(token=token, expires_in=tokens.expire_seconds).model_dump())


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(login_limit)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; return an access token."""
    settings: Settings = request.app.state.settings
    accounts: AccountStore = request.app.state.account_store
    tokens: TokenService = request.app.state.token_service

    try:
        account = authenticate_account(accounts, body.email, body.password, rounds=settings.bcrypt_rounds)
    except AuthenticationError as exc:
        logger.info("Login failed: %s", exc.message)
        return _token_response(
            {"success": False, "error": "Login failed", "message": exc.message},
            status_code=401,
        )

    token = tokens.issue(account.id, account.role, account.email)
    return _token_response(LoginResponse(token=token, expires_in=tokens.expire_seconds).model_dump())


@router.get("/auth/me", response_model=MeResponse)
def me(ctx: RequestContext = Depends(require_identity)) -> MeResponse:
    """Return the identity carried by the caller's token."""
    return MeResponse.from_claim(ctx.identity)
