"""
api/main.py -- FastAPI application entry point for SellerHub.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. CORSMiddleware        -- adds CORS headers for allowed browser origins
  2. log_requests          -- one access-log line per request with latency

Lifespan builds every store and service once from Settings and hangs them on
app.state; route handlers only ever read app.state. Startup and shutdown are
symmetric (sweep task cancelled, HTTP client closed, engine disposed).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from api.routes.v1.sellers import router as sellers_router
from auth.service import AuthService
from auth.store import AccountStore, SessionStore
from core.config import get_settings
from core.db import create_db_engine
from core.errors import (
    DuplicateEmail,
    DuplicateExternalAccount,
    EnrichmentFailed,
    InvalidCredentials,
    NotFoundOrForbidden,
    SellerHubError,
    StorageError,
    Unauthorized,
    ValidationError,
)
from sellers.fetcher import MercadoLibreClient
from sellers.service import GlobalSellerService
from sellers.store import GlobalSellerStore

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=get_settings().effective_log_level,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("sellerhub.api")

# ---------------------------------------------------------------------------
# Background session sweep
# ---------------------------------------------------------------------------


async def _sweep_loop(app: FastAPI, interval_seconds: int) -> None:
    """Delete expired session rows every interval_seconds.

    Purely housekeeping: session lookups already ignore expired rows. A
    failed sweep, whatever the cause, is logged and retried on the next
    tick. CancelledError from task.cancel() is a BaseException, so shutdown
    still stops the loop.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            app.state.auth_service.sweep_expired_sessions()
        except Exception:
            logger.exception("Session sweep failed; will retry in %ds", interval_seconds)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application-level resources across the full server lifetime.

    Everything before yield runs on startup; everything after yield runs on
    shutdown.
    """
    settings = get_settings()
    logger.info("SellerHub API starting up")
    app.state.settings = settings
    app.state.engine = create_db_engine(settings.database_url)

    accounts = AccountStore(app.state.engine)
    sessions = SessionStore(app.state.engine, ttl_seconds=settings.session_ttl_seconds)
    app.state.auth_service = AuthService(accounts, sessions, hash_iterations=settings.password_hash_iterations)

    app.state.ml_client = MercadoLibreClient(
        base_url=settings.marketplace_api_url,
        timeout=settings.marketplace_timeout_seconds,
    )
    app.state.seller_service = GlobalSellerService(GlobalSellerStore(app.state.engine), app.state.ml_client)
    logger.info("Stores initialized (session_ttl=%ds)", settings.session_ttl_seconds)

    app.state.sweep_task = asyncio.create_task(_sweep_loop(app, settings.session_sweep_interval_seconds))

    yield

    app.state.sweep_task.cancel()
    app.state.ml_client.close()
    app.state.engine.dispose()
    logger.info("SellerHub API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SellerHub API",
    description="Accounts, sessions and Mercado Libre Global Seller records.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
    max_age=3600,
)


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
app.include_router(sellers_router, prefix="/api/v1", tags=["Global Sellers"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so API clients can parse
# errors uniformly without inspecting status codes to choose a schema.
# ---------------------------------------------------------------------------

_STATUS_BY_ERROR: dict[type[SellerHubError], int] = {
    ValidationError: 400,
    InvalidCredentials: 401,
    Unauthorized: 401,
    NotFoundOrForbidden: 404,
    DuplicateEmail: 409,
    DuplicateExternalAccount: 409,
    EnrichmentFailed: 502,
    StorageError: 500,
}


def _error_response(status_code: int, code: str, message: str, detail: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(code=code, message=message, detail=detail)).model_dump(),
    )


@app.exception_handler(SellerHubError)
async def domain_error_handler(request: Request, exc: SellerHubError) -> JSONResponse:
    """Map the domain taxonomy in core/errors.py onto HTTP.

    EnrichmentFailed keeps its upstream status/message for the log only; the
    client gets the generic message so Mercado Libre internals do not leak.
    """
    status_code = next((s for cls, s in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500)
    if isinstance(exc, EnrichmentFailed):
        logger.warning(
            "Enrichment failed on %s %s: upstream status=%s message=%s",
            request.method,
            request.url.path,
            exc.upstream_status,
            exc.upstream_message,
        )
    resp = _error_response(status_code, exc.code, exc.message)
    if isinstance(exc, InvalidCredentials):
        resp.headers["Cache-Control"] = "no-store"
    return resp


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Return 422 with structured error when request body or query params fail validation."""
    return _error_response(422, "validation_error", "Request validation failed.", str(exc.errors()))


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    if isinstance(exc.detail, dict):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})
    return _error_response(exc.status_code, f"http_{exc.status_code}", str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error_response(500, "internal_error", "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py (not in a router) so it is always reachable.
# No auth -- load balancers and monitors must be able to call it.
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", response_model=HealthResponse, tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus a database round-trip check."""
    database = "ok"
    try:
        with request.app.state.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Health check: database unreachable")
        database = "error"
    return HealthResponse(
        status="healthy" if database == "ok" else "degraded",
        version=VERSION,
        components={"app": "ok", "database": database},
    )
