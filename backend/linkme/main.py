"""
LinkMe Backend - FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       lifespan() owns process-wide resources.
Who:   uvicorn (uvicorn linkme.main:app) and the test suite (create_app()).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware: Rate Limit → Request ID → Access Log        │
    │                                                          │
    │  Routes:                                                 │
    │    /api/analytics   /api/profiles   /api/social-links    │
    │    /api/users/me    /health                              │
    │                                                          │
    │  Exception Handlers:                                     │
    │    Validation→400  Auth→401  NotFound→404                │
    │    Conflict→409    Database→500  Unexpected→500          │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, configuration check, open the GeoIP database
    Shutdown: close the GeoIP database, dispose the DB engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from linkme import __version__
from linkme.config import settings
from linkme.database import dispose_engine
from linkme.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    LinkMeError,
    NotFoundError,
    ValidationError,
)
from linkme.middleware.logging import RequestLoggingMiddleware
from linkme.middleware.rate_limit import RateLimitMiddleware
from linkme.middleware.request_id import request_id_var, RequestIDMiddleware
from linkme.routes import analytics, health, profiles, social_links, users
from linkme.services.enrichment import GeoLocator

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Root logger to stdout at settings.log_level; quiet chatty libraries."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("LinkMe Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health checks and public routes still work
        logger.error("Configuration error: %s", str(e))

    # One reader for the whole process; geoip2 readers are safe to share
    app.state.geo_locator = GeoLocator.open(settings.geoip_db_path)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("API docs: http://%s:%d/docs", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("LinkMe Backend shutting down...")
    app.state.geo_locator.close()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def error_body(error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the LinkMeError hierarchy onto JSON error responses.

    Every body has the shape {error, message, details?, request_id}.
    NotFoundError never carries details: the same body is returned for a
    missing profile and for someone else's profile.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400,
            content=error_body("validation_error", exc.message, exc.context),
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(
            status_code=401,
            content=error_body("unauthorized", exc.message),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content=error_body("not_found", exc.message),
        )

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content=error_body("conflict", exc.message, exc.context),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error(
            "[%s] Database error: %s | Context: %s",
            request_id_var.get(""), exc.message, exc.context,
        )
        details = None
        if "original_error" in exc.context:
            details = {"error": exc.context["original_error"]}
        return JSONResponse(
            status_code=500,
            content=error_body("server_error", exc.message, details),
        )

    @app.exception_handler(LinkMeError)
    async def handle_linkme_error(request: Request, exc: LinkMeError):
        logger.error("[%s] Unhandled application error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=500,
            content=error_body("server_error", exc.message),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s",
            request_id_var.get(""),
            str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content=error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Build a fully configured application. Tests call this once per test."""
    app = FastAPI(
        title="LinkMe API",
        description=(
            "Digital business cards: profiles, social links and view analytics "
            "for QR, NFC and shared-link visits."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Added in reverse: the last middleware added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(analytics.router)
    app.include_router(profiles.router)
    app.include_router(social_links.router)
    app.include_router(users.router)
    app.include_router(health.router)

    return app


app = create_app()
