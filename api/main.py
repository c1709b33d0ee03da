"""
api/main.py -- FastAPI application entry point for SessionGate.

Run with:      uvicorn asgi:app --reload
               python main.py serve

Middleware stack (outermost to innermost):
  1. TrustedHostMiddleware -- rejects requests with unexpected Host headers
  2. CORSMiddleware        -- adds CORS headers for allowed browser origins

Lifespan builds the auth collaborators (user directory, session store,
challenge store) once, wires them into an AuthProtocol, and parks everything
on app.state. Stores are explicit instances owned by the process -- nothing
in auth/ reaches for module globals.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.v1.session import router as session_router
from auth.challenges import ChallengeStore
from auth.directory import InMemoryUserDirectory
from auth.foreign import providers_from_settings
from auth.hashing import get_hasher
from auth.models import CookieSource, CookieToken, CsrfToken, HeaderSource, QuerySource, SecurityScheme, TokenKind
from auth.protocol import AuthProtocol
from auth.sessions import InMemorySessionStore
from core.config import Settings, get_settings

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("sessiongate.api")

_settings = get_settings()

# ---------------------------------------------------------------------------
# Auth wiring
# ---------------------------------------------------------------------------


def token_kind_from_settings(settings: Settings) -> TokenKind:
    if settings.token_kind == "csrf":
        return CsrfToken(header=settings.token_name)
    return CookieToken(name=settings.token_name)


def security_from_settings(settings: Settings) -> SecurityScheme:
    """Ordered token sources shared by /connect, /logout and require_session.

    The optional query parameter comes first, then the transport the
    deployment uses: the cookie in cookie mode, the header in CSRF mode.
    """
    scheme: SecurityScheme = []
    if settings.token_query_param:
        scheme.append(QuerySource(settings.token_query_param))
    if settings.token_kind == "csrf":
        scheme.append(HeaderSource(settings.token_name))
    else:
        scheme.append(CookieSource(settings.token_name))
    return scheme


def configure_auth(
    app: FastAPI, settings: Settings, directory: Optional[InMemoryUserDirectory] = None
) -> None:
    """Build the auth collaborators and attach them to app.state."""
    hasher = get_hasher(settings.hash_algorithm)
    if directory is None:
        directory = InMemoryUserDirectory(hasher=hasher, providers=providers_from_settings(settings))
        if settings.users_file:
            directory.load_users(settings.users_file)
    sessions: InMemorySessionStore[str] = InMemorySessionStore(token_size=settings.challenge_size)
    challenges = ChallengeStore(
        max_challenges=settings.max_challenges,
        challenge_size=settings.challenge_size,
    )
    app.state.settings = settings
    app.state.directory = directory
    app.state.sessions = sessions
    app.state.challenges = challenges
    app.state.security = security_from_settings(settings)
    app.state.auth = AuthProtocol(
        directory=directory,
        sessions=sessions,
        challenges=challenges,
        token_kind=token_kind_from_settings(settings),
        hasher=hasher,
        audit_verbosity=settings.audit_verbosity,
    )


# ---------------------------------------------------------------------------
# Lifespan -- modern startup / shutdown pattern (replaces @app.on_event)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the in-memory stores on startup.

    Sessions and challenges do not survive a restart: there is no durable
    backing store to flush on shutdown.
    """
    logger.info("SessionGate API starting up")
    configure_auth(app, _settings)
    logger.info(
        "Auth initialized (token_kind=%s, users=%d)",
        _settings.token_kind,
        len(app.state.directory),
    )

    yield

    logger.info("SessionGate API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SessionGate API",
    description="Challenge-response session authentication.",
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

# In CSRF mode the token header must be allowed for cross-origin callers.
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type", _settings.token_name],
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

app.include_router(session_router, prefix=_settings.api_prefix, tags=["Session"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# Auth failures are not exceptions: the protocol returns them as
# {"error": kind} bodies. These handlers cover transport-level failures and
# return the structured ErrorResponse envelope.
# ---------------------------------------------------------------------------


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed login bodies and query params land here as 422."""
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
    # require_session raises with a dict detail: {"code": "Invalid_session", ...}
    if isinstance(exc.detail, dict):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )
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
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
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
# Defined directly in main.py (not in a router) so it is always reachable
# regardless of router registration state.
# ---------------------------------------------------------------------------


@app.get("/health", include_in_schema=True, tags=["Health"])
async def health() -> HealthResponse:
    """Return API liveness and current version."""
    return HealthResponse(version=__version__)
