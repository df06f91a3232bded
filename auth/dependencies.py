"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

require_identity() runs once per protected request and ends in one of two
states:
  Verified -- a RequestContext carrying the IdentityClaim is attached to
              request.state.context and returned to the handler.
  Rejected -- HTTP 401. A missing or non-Bearer Authorization header gets
              "Unauthorized: No token provided"; any token the TokenService
              refuses gets "Unauthorized: Invalid token". Whether the token was
              expired or malformed is written to the log, never to the client.

There is no retry and no state besides the context attachment.

Layer rule: no imports from api/ or expenses/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import HTTPException, Request

from auth.models import RequestContext
from auth.tokens import TokenService
from core.errors import TokenExpiredError, TokenInvalidError

logger = logging.getLogger("expenseapi.auth")

_BEARER_PREFIX = "Bearer "

NO_TOKEN_MESSAGE = "Unauthorized: No token provided"
INVALID_TOKEN_MESSAGE = "Unauthorized: Invalid token"


def _unauthorized(message: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail={"code": "unauthorized", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def extract_bearer_token(request: Request) -> str | None:
    """Return the token from 'Authorization: Bearer <token>', or None."""
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith(_BEARER_PREFIX):
        return None
    token = auth_header[len(_BEARER_PREFIX) :].strip()
    return token or None


def require_identity(request: Request) -> RequestContext:
    """Require a valid bearer token. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(ctx: RequestContext = Depends(require_identity)): ...
    """
    token = extract_bearer_token(request)
    if token is None:
        raise _unauthorized(NO_TOKEN_MESSAGE)

    token_service: TokenService = request.app.state.token_service
    try:
        claim = token_service.verify(token)
    except TokenExpiredError:
        logger.info("Rejected expired token on %s %s", request.method, request.url.path)
        raise _unauthorized(INVALID_TOKEN_MESSAGE) from None
    except TokenInvalidError as exc:
        logger.info("Rejected invalid token on %s %s: %s", request.method, request.url.path, exc.message)
        raise _unauthorized(INVALID_TOKEN_MESSAGE) from None

    context = RequestContext(identity=claim)
    request.state.context = context
    return context
