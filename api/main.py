"""
api/main.py -- FastAPI application entry point for Chirpy sessions.

Exposes SessionService over HTTP. The HTTP layer owns routing, JSON
marshaling and status codes; every auth decision lives in auth/.

Run with:      uvicorn asgi:app --reload

Lifespan handles startup (settings, store, SessionService) and shutdown
(close DB connection) symmetrically. The JWT secret is read exactly once,
here, and handed to SessionService through SessionConfig.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from api.models import ErrorDetail, ErrorResponse
from api.routes.admin import router as admin_router
from api.routes.auth import router as auth_router
from api.routes.polka import router as polka_router
from auth.errors import AuthError, ErrorKind
from auth.service import SessionConfig, SessionService
from auth.store import SessionStore
from core.config import get_settings

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("chirpy.api")

# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown. Settings validation failures (e.g. missing JWT_SECRET outside
    debug mode) abort startup here, before any request is served.
    """
    logger.info("Chirpy API starting up")
    settings = get_settings()
    app.state.settings = settings
    app.state.store = SessionStore(settings.database_url)
    app.state.session_service = SessionService(app.state.store, SessionConfig.from_settings(settings))
    logger.info("Auth initialized (platform=%s)", settings.platform)

    yield

    app.state.store.close()
    logger.info("Chirpy API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Chirpy API",
    description="Password login, bearer access tokens and revocable refresh tokens.",
    version="0.1.0",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Request logging middleware
#
# Every request passes through this coroutine before reaching any route
# handler. Only method, path, status and latency are logged -- never headers,
# since Authorization carries live credentials.
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

app.include_router(auth_router, prefix="/api", tags=["Auth"])
app.include_router(polka_router, prefix="/api/polka", tags=["Webhooks"])
app.include_router(admin_router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

_AUTH_STATUS = {
    ErrorKind.unauthorized: 401,
    # NotFound is meant to be mapped inside SessionService. If one escapes,
    # it is still rendered as an ordinary 401 rather than leaking "not found".
    ErrorKind.not_found: 401,
    ErrorKind.email_taken: 409,
    ErrorKind.hashing_error: 500,
    ErrorKind.storage_error: 500,
}


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Render an AuthError from its public fields only.

    exc.reason is logged, never serialized: two failures with different
    reasons must produce byte-identical responses.
    """
    status_code = _AUTH_STATUS.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("Infrastructure failure on %s %s: %r", request.method, request.url.path, exc, exc_info=exc)
        return _error_response(status_code, "internal_error", "An unexpected error occurred.")
    if status_code == 401:
        response = _error_response(401, ErrorKind.unauthorized.value, exc.message)
        response.headers["WWW-Authenticate"] = "Bearer"
        return response
    return _error_response(status_code, exc.kind.value, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Return a structured error for all FastAPI/Starlette HTTP exceptions.

    When detail is already a structured dict, use it directly as the error
    field rather than stringifying it.
    """
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
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
# ---------------------------------------------------------------------------


@app.get("/api/healthz", response_class=PlainTextResponse, tags=["Health"])
async def healthz() -> PlainTextResponse:
    """Liveness probe. No auth, no DB call."""
    return PlainTextResponse("OK")
