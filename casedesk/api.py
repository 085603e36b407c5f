"""
CaseDesk API
============

FastAPI application: middleware, error envelopes, startup and routers.

Run:
    uvicorn casedesk.api:app --reload
"""

import logging
from typing import List

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api_access import router as access_router
from .api_auth import router as auth_router
from .api_cases import router as cases_router
from .api_documents import router as documents_router
from .api_messages import router as messages_router
from .config import get_settings
from .db.session import get_db_session, init_db
from .errors import AuthenticationError, StoreError
from .middleware.security import SecurityHeadersMiddleware
from .responses import error_body, server_error
from .results import FailureKind
from .seed import seed_demo_users
from .token_blacklist import TokenRevocationList

# Configure logging
logging.basicConfig(level=getattr(logging, get_settings().log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="CaseDesk",
    description="Legal case management: client-owned cases, lawyer access requests, case documents and messages",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


def _parse_cors_origins(origins: List[str]) -> List[str]:
    return [o.strip('"').strip("'").rstrip("/") for o in origins if o]


CORS_ALLOW_ORIGINS = _parse_cors_origins(get_settings().cors_origins)
logger.info(f"CORS allow origins: {CORS_ALLOW_ORIGINS}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)

app.include_router(auth_router)
app.include_router(cases_router)
app.include_router(access_router)
app.include_router(documents_router)
app.include_router(messages_router)


# =============================================================================
# Lifecycle
# =============================================================================

@app.on_event("startup")
async def startup_event():
    """Initialize on startup"""
    settings = get_settings()
    logger.info(f"Starting CaseDesk v{settings.service_version} ({settings.environment})")

    for warning in settings.validate_for_production():
        logger.warning(f"Config warning: {warning}")

    init_db()

    with get_db_session() as db:
        purged = TokenRevocationList(db).purge_expired()
        if purged:
            logger.info(f"Purged {purged} expired token blacklist entries")

    if settings.seed_demo_data:
        seed_demo_users()


@app.get("/health")
async def health():
    return {"status": "ok", "version": __version__}


# =============================================================================
# Error envelopes
# =============================================================================

@app.exception_handler(AuthenticationError)
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    return JSONResponse(status_code=401, content=error_body(exc.message))


@app.exception_handler(StarletteHTTPException)
async def api_http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "Request failed"
    return JSONResponse(status_code=exc.status_code, content=error_body(message), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def api_validation_exception_handler(request: Request, exc: RequestValidationError):
    """400 with field messages, without echoing inputs"""
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path"))
        messages.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse(
        status_code=400,
        content=error_body(f"Validation failed: {', '.join(messages)}", FailureKind.VALIDATION),
    )


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    logger.error(f"Storage fault on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return server_error()


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler - always return valid JSON, never internals"""
    logger.error(f"Unhandled exception on {request.url.path}: {exc.__class__.__name__}", exc_info=exc)
    return server_error()
