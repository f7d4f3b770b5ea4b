"""
api/main.py -- FastAPI application entry point for Gatekeeper.

Exposes the authentication engine and the posts resource over HTTP.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins

Lifespan builds settings, both stores, the mailer and AuthService on startup
and closes the stores on shutdown. Route handlers reach all of them through
request.app.state.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.posts import router as posts_router
from auth.errors import AuthError, ServerError
from auth.service import AuthService
from auth.store import UserStore
from core.config import get_settings
from mail.sender import SmtpMailer
from posts.store import PostStore

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("gatekeeper.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Startup order:
      1. Settings -- every other component is built from them.
      2. Stores -- create their tables on first use.
      3. Mailer, then AuthService, which needs the user store and the mailer.
    """
    logger.info("Gatekeeper API starting up")
    settings = get_settings()
    app.state.settings = settings
    app.state.user_store = UserStore(settings.database_url, timeout=settings.db_timeout_seconds)
    app.state.post_store = PostStore(settings.database_url, timeout=settings.db_timeout_seconds)
    logger.info("Stores initialized")
    app.state.mailer = SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        sender=settings.mail_from,
        user=settings.smtp_user,
        password=settings.smtp_password,
        starttls=settings.smtp_starttls,
        timeout=settings.mail_timeout_seconds,
    )
    app.state.auth_service = AuthService.from_settings(settings, app.state.user_store, app.state.mailer)
    logger.info("Auth initialized (token_ttl=%ds, code_ttl=%ds)", settings.token_expire_seconds, settings.code_ttl_seconds)

    yield

    app.state.post_store.close()
    app.state.user_store.close()
    logger.info("Gatekeeper API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Gatekeeper API",
    description="Email/password accounts with emailed one-time codes, and owner-guarded posts.",
    version=__version__,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
#
# Register in the order you want the request to encounter them:
# TrustedHost -> CORS.
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "client"],
    max_age=3600,
)

# ---------------------------------------------------------------------------
# Request logging middleware
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
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])
app.include_router(posts_router, prefix="/api/v1", tags=["Posts"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render an engine error with its own status and code.

    Only ServerError carries a detail string; for every other kind the
    message alone is what the client needs.
    """
    detail = exc.detail if isinstance(exc, ServerError) else None
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.detail)
    return _error_response(exc.status_code, exc.code, exc.message, detail)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Render a record-store fault raised outside AuthService as a ServerError.

    The detail is the exception class name only; SQL text and bound
    parameters stay in the log.
    """
    logger.exception("Record store failure on %s %s", request.method, request.url.path)
    err = ServerError(detail=exc.__class__.__name__)
    return _error_response(err.status_code, err.code, err.message, err.detail)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 400 validation_error when request body or query params fail schema checks.

    Same status and code as ValidationFailed raised by the engine, so clients
    see one shape for every input rejection.
    """
    return _error_response(400, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Return a structured error for FastAPI/Starlette HTTP exceptions (404 routes, 405 methods)."""
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception is written to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", include_in_schema=True, tags=["Health"])
def health(request: Request) -> JSONResponse:
    """Return API liveness, version, and whether the record store answers."""
    components = {"app": "ok"}
    try:
        components["database"] = "ok" if request.app.state.user_store.ping() else "error"
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        components["database"] = "error"
    ok = all(v == "ok" for v in components.values())
    body = HealthResponse(status="healthy" if ok else "degraded", version=__version__, components=components)
    return JSONResponse(status_code=200 if ok else 503, content=body.model_dump())
