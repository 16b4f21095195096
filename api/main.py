"""
api/main.py -- FastAPI application entry point for Gatekeeper.

Run with:      uvicorn asgi:app --reload

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins
  3. log_requests          -- one log line per request with latency

Lifespan opens the record store, wires the account services onto app.state,
seeds the default accounts, starts the session purge task, and closes the
store on shutdown.
"""

from __future__ import annotations

import asyncio
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

from api.models import ApiResponse, HealthResponse
from api.routes.auth import router as auth_router
from api.routes.users import router as users_router
from auth.accounts import AccountService
from auth.directory import UserDirectory
from auth.errors import AccountError
from auth.policies import PolicyResolver
from auth.sessions import SessionAuthority
from auth.store import UserStore
from core.config import Settings, get_settings

_VERSION = "0.1.0"

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
# Service wiring
# ---------------------------------------------------------------------------


def wire_services(state, store: UserStore, settings: Settings) -> None:
    """Attach the store and every service built on it to app.state.

    Route handlers and dependencies read app.state.<name>; tests call this
    with an isolated store instead of going through lifespan.
    """
    state.user_store = store
    state.directory = UserDirectory(store)
    state.sessions = SessionAuthority(store, expire_seconds=settings.token_expire_seconds)
    state.policy = PolicyResolver(state.directory, admin_username=settings.admin_username)
    state.accounts = AccountService(state.directory, state.sessions)


# ---------------------------------------------------------------------------
# Background session purge
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI, interval_seconds: int) -> None:
    """Delete revoked and expired session rows every interval_seconds.

    Started in lifespan and cancelled on shutdown; CancelledError raised out
    of asyncio.sleep ends the loop. A failed purge is logged and retried on
    the next tick.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            app.state.sessions.purge()
        except SQLAlchemyError:
            logger.exception("Session purge failed")


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the store, seed default accounts and start the purge task; undo on shutdown."""
    logger.info("Gatekeeper API starting up")
    wire_services(app.state, UserStore(_settings.database_url), _settings)
    if _settings.seed_default_accounts:
        created = app.state.accounts.seed_defaults(_settings)
        logger.info("Default accounts seeded (%d created)", len(created))
    app.state.purge_task = asyncio.create_task(_purge_loop(app, _settings.session_purge_interval_seconds))

    yield

    app.state.purge_task.cancel()
    app.state.user_store.close()
    logger.info("Gatekeeper API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Gatekeeper API",
    description="User accounts, session tokens and role/permission-based access control.",
    version=_VERSION,
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware stack
# ---------------------------------------------------------------------------

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=_settings.allowed_hosts,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
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

app.include_router(auth_router, tags=["Auth"])
app.include_router(users_router, tags=["Users"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ApiResponse envelope, with the HTTP status
# repeated as the envelope code, so clients can branch on either.
# ---------------------------------------------------------------------------


def _envelope(code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=code, content=ApiResponse.error(code, message).model_dump())


@app.exception_handler(AccountError)
async def account_error_handler(request: Request, exc: AccountError) -> JSONResponse:
    """Render a service-layer failure (validation, auth, conflict, not found)."""
    if exc.code in (401, 403):
        logger.info("%s %s denied: %s", request.method, request.url.path, exc.message)
    return _envelope(exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed body or parameters (wrong type, over-long field)."""
    errors = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'][1:]) or 'body'}: {err['msg']}" for err in exc.errors()
    )
    return _envelope(422, f"Request validation failed. {errors}".strip())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return _envelope(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected server errors.

    The exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _envelope(500, "An unexpected error occurred.")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version and a database round-trip check. No auth."""
    store: UserStore = request.app.state.user_store
    try:
        database = "ok" if store.ping() else "error"
    except Exception:
        logger.exception("Health check database ping failed")
        database = "error"
    return HealthResponse(version=_VERSION, components={"app": "ok", "database": database})
