"""
api/main.py -- FastAPI application entry point for the Expense API.

Run with:  uvicorn asgi:app --reload
           python main.py --port 5000

Middleware stack (outermost to innermost):
  1. CORSMiddleware     -- adds CORS headers for the configured browser origins
  2. SlowAPIMiddleware  -- enforces per-route rate limits from api.limiter
  3. log_requests       -- one log line per request with status and latency

Lifespan builds every piece of process-wide state exactly once -- Settings,
TokenService, AccountStore, ExpenseStore -- and puts it on app.state. Nothing
on app.state is mutated after startup. A missing SECRET_KEY makes
get_settings() raise here, which aborts startup before any request is served.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from api.limiter import limiter
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.expenses import router as expenses_router
from auth.store import AccountStore
from auth.tokens import TokenService
from core.config import get_settings
from core.errors import ExpenseApiError, StoreError
from expenses.store import ExpenseStore

__version__ = "1.0.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("expenseapi.api")


# ---------------------------------------------------------------------------
# Lifespan -- startup / shutdown
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    # Startup
    settings = get_settings()
    logging.getLogger("expenseapi").setLevel(settings.log_level.upper())
    logger.info("Expense API starting up")
    app.state.settings = settings
    app.state.token_service = TokenService(settings.secret_key, settings.token_expire_seconds)
    app.state.account_store = AccountStore(settings.database_url)
    app.state.expense_store = ExpenseStore(settings.database_url)
    logger.info("Stores initialized (token lifetime %ds, bcrypt cost %d)", settings.token_expire_seconds, settings.bcrypt_rounds)

    yield

    # Shutdown
    app.state.expense_store.close()
    app.state.account_store.close()
    logger.info("Expense API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Expense API",
    description="Personal expense tracking with per-account isolation.",
    version=__version__,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------


def _cors_origins() -> list[str]:
    # CORS is configured at import time, before the lifespan runs; a missing
    # SECRET_KEY is reported by the lifespan, not here.
    try:
        return get_settings().cors_origins
    except ValueError:
        return []


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, tags=["Auth"])
app.include_router(expenses_router, tags=["Expenses"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 with a structured error when a rate limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    response = JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=ErrorDetail(
                code="rate_limited",
                message="Too many requests.",
                detail=str(exc),
            )
        ).model_dump(exclude_none=True),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 with a structured list of field errors."""
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": err.get("msg", ""), "type": err.get("type", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                errors=errors,
            )
        ).model_dump(exclude_none=True),
    )


@app.exception_handler(ExpenseApiError)
async def domain_error_handler(request: Request, exc: ExpenseApiError) -> JSONResponse:
    """Map the core/errors.py taxonomy onto the error envelope.

    5xx errors are logged with their internal detail and answered with the
    generic message only.
    """
    message = exc.message
    if exc.status_code >= 500:
        if isinstance(exc, StoreError):
            logger.error("Store error on %s %s", request.method, request.url.path)
        else:
            logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        message = ExpenseApiError.default_message
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=ErrorDetail(code=exc.code, message=message)).model_dump(exclude_none=True),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    Registered on the Starlette base class so router-level 404/405 responses
    use the same envelope.

    Route handlers and dependencies raise HTTPException with a dict detail.
    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    headers = getattr(exc, "headers", None)
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=headers)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(exclude_none=True),
        headers=headers,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="internal_error",
                message="An unexpected error occurred.",
            )
        ).model_dump(exclude_none=True),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No rate limit and no auth -- load balancers must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and database reachability."""
    try:
        request.app.state.account_store.ping()
        database = "ok"
    except StoreError:
        database = "error"
    return HealthResponse(version=__version__, components={"app": "ok", "database": database})
