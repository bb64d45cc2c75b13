"""
api/main.py -- FastAPI application entry point for the assignment tracker.

Run with:      python main.py serve
               uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  0. log_requests              -- one access-log line per request
  1. SecurityHeadersMiddleware -- helmet-style headers incl. CSP
  2. TrustedHostMiddleware     -- rejects requests with unexpected Host headers
  3. SessionMiddleware         -- signed session cookie (identity + OIDC state)
  4. SlowAPIMiddleware         -- enforces the login rate limits (api.security.limiter)

Lifespan opens the pooled AssignmentStore on startup and disposes the pool on
shutdown.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from urllib.parse import quote

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.sessions import SessionMiddleware

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.security import SecurityHeadersMiddleware, limiter
from auth.dependencies import LoginRequired
from auth.oauth import oauth as oauth_client
from core.config import get_settings
from tracker.store import AssignmentStore

VERSION = "1.0.0"

# Same cookie name express-openid-connect used, so a reverse proxy config
# that special-cases it keeps working.
SESSION_COOKIE = "appSession"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("assignment_tracker.api")

_settings = get_settings()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the connection pool on startup; dispose it on shutdown."""
    logger.info("Assignment tracker starting up")
    cfg = get_settings()
    app.state.store = AssignmentStore(
        cfg.resolved_database_url(),
        pool_size=cfg.db_connection_limit,
        pool_recycle=cfg.db_pool_recycle,
    )
    app.state.oauth = oauth_client
    logger.info("Auth initialized (oidc_enabled=%s)", cfg.oidc_enabled)

    yield

    app.state.store.close()
    logger.info("Assignment tracker shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Assignment Tracker",
    description="Track homework assignments per subject, per signed-in user.",
    version=VERSION,
    lifespan=lifespan,
    docs_url="/docs" if _settings.debug else None,
    redoc_url=None,
    openapi_url="/openapi.json" if _settings.debug else None,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() prepends, so the LAST call below is the OUTERMOST layer.
# Registered innermost-first: SlowAPI -> Session -> TrustedHost -> headers.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    SessionMiddleware,
    secret_key=_settings.secret_key,
    session_cookie=SESSION_COOKIE,
    max_age=_settings.session_max_age,
    same_site="lax",
    https_only=_settings.secure_cookies,
)

app.add_middleware(TrustedHostMiddleware, allowed_hosts=_settings.allowed_hosts)

app.add_middleware(SecurityHeadersMiddleware, hsts=_settings.secure_cookies)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


# ---------------------------------------------------------------------------
# Request logging middleware
#
# One access-log line per request: method, path, status, latency, client.
# ---------------------------------------------------------------------------


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
# Exception handlers
#
# JSON errors share one ErrorResponse envelope. LoginRequired is the odd one
# out: browsers get a redirect, not an error body.
# ---------------------------------------------------------------------------


@app.exception_handler(LoginRequired)
async def login_required_handler(request: Request, exc: LoginRequired) -> RedirectResponse:
    """Send unauthenticated visitors to /login, remembering where they were going.

    next= is always the request *path* (never a full URL), so the value cannot
    point off-site. /login validates it again before storing it.
    """
    return RedirectResponse(f"/login?next={quote(exc.next_path)}", status_code=302)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Return 500 for any database failure.

    The driver error is logged with its traceback but never echoed to the
    client: SQL errors leak table names, column names and sometimes values.
    """
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error=ErrorDetail(
                code="database_error",
                message="The request could not be completed because of a database error.",
            )
        ).model_dump(),
    )


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
        ).model_dump(),
    )
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when path or query params fail validation."""
    return JSONResponse(
        status_code=422,
        content=ErrorResponse(
            error=ErrorDetail(
                code="validation_error",
                message="Request validation failed.",
                detail=str(exc.errors()),
            )
        ).model_dump(),
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=ErrorDetail(
                code=f"http_{exc.status_code}",
                message=str(exc.detail),
            )
        ).model_dump(),
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
        ).model_dump(),
    )


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No auth and no rate limit -- process managers and load balancers poll it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, and whether the database answers."""
    db_ok = request.app.state.store.ping()
    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        version=VERSION,
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
