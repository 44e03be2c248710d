"""
FastAPI application factory.

``create_app`` wires settings, the record store and the identity provider
into one application. Tests and the ``--memory`` server pass in-memory
implementations; production builds the Supabase-backed ones from settings.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from genealogy_records import __version__
from genealogy_records.auth.provider import AuthProvider, SupabaseAuthProvider
from genealogy_records.auth.tokens import TokenManager
from genealogy_records.config import Settings
from genealogy_records.core.errors import (
    GenealogyError,
    RateLimitError,
    format_validation_errors,
)
from genealogy_records.store.base import RecordStore
from genealogy_records.store.supabase import SupabaseStore
from genealogy_records.web.deps import AppContext, client_ip
from genealogy_records.web.ratelimit import RateLimitPolicy
from genealogy_records.web.routes import auth_router, genealogies_router, persons_router
from genealogy_records.web.schemas import ErrorResponse, HealthResponse, ServiceIndex

logger = logging.getLogger(__name__)


def _error_response(
    status_code: int,
    body: ErrorResponse,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


def _rate_limited(exc: RateLimitError) -> JSONResponse:
    return _error_response(
        429, ErrorResponse.from_error(exc), headers={"Retry-After": str(exc.retry_after)},
    )


def _server_error(settings: Settings, exc: Exception, code: str = "SERVER_ERROR") -> JSONResponse:
    return _error_response(500, ErrorResponse(
        message="Internal server error",
        code=code,
        error=str(exc) if settings.is_development else None,
    ))


def create_app(
    settings: Settings | None = None,
    store: RecordStore | None = None,
    auth_provider: AuthProvider | None = None,
    rate_limits: RateLimitPolicy | None = None,
) -> FastAPI:
    """Build the application. Missing collaborators are created from settings."""
    if settings is None:
        settings = Settings.from_env()
    if store is None:
        store = SupabaseStore(settings.store_config())
    if auth_provider is None:
        auth_provider = SupabaseAuthProvider(settings.auth_config())
    if rate_limits is None:
        rate_limits = RateLimitPolicy()
    context = AppContext(
        settings=settings,
        store=store,
        provider=auth_provider,
        tokens=TokenManager(settings.token_config()),
        rate_limits=rate_limits,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting genealogy records API (%s, store=%s, auth=%s)",
            settings.environment, context.store.name, context.provider.name,
        )
        yield
        await context.store.close()
        await context.provider.close()

    app = FastAPI(
        title="Genealogy Records API",
        description="Family tree records: genealogies, persons, relationships and life events.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    # =========================================================================
    # Error mapping
    # =========================================================================

    @app.exception_handler(RateLimitError)
    async def rate_limit_handler(request: Request, exc: RateLimitError):
        return _rate_limited(exc)

    @app.exception_handler(GenealogyError)
    async def genealogy_error_handler(request: Request, exc: GenealogyError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
            return _server_error(settings, exc, exc.code)
        return _error_response(exc.status_code, ErrorResponse.from_error(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, ErrorResponse(
            message="Input validation failed",
            code="VALIDATION_FAILED",
            errors=format_validation_errors(exc.errors()),
        ))

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error_response(404, ErrorResponse(
                message="Route not found", code="NOT_FOUND", path=request.url.path,
            ))
        return _error_response(exc.status_code, ErrorResponse(message=str(exc.detail)))

    # =========================================================================
    # Middleware
    # =========================================================================

    @app.middleware("http")
    async def log_and_throttle(request: Request, call_next):
        started = time.perf_counter()
        try:
            if context.rate_limits.global_limiter:
                context.rate_limits.global_limiter.hit(f"ip:{client_ip(request)}")
            response = await call_next(request)
        except RateLimitError as e:
            response = _rate_limited(e)
        except Exception as e:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = _server_error(settings, e)

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s - %d - %.0fms",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        expose_headers=["X-Token-Expiring", "X-Token-Refresh-Needed"],
    )

    # =========================================================================
    # Routes
    # =========================================================================

    app.include_router(auth_router, prefix="/api")
    app.include_router(genealogies_router, prefix="/api")
    app.include_router(persons_router, prefix="/api")

    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check() -> HealthResponse:
        return HealthResponse(
            message="Service is running",
            timestamp=datetime.now(timezone.utc),
            uptime=round(time.monotonic() - context.started_at, 3),
            environment=settings.environment,
        )

    @app.get("/api", response_model=ServiceIndex, tags=["Health"])
    async def service_index() -> ServiceIndex:
        return ServiceIndex(
            message="Genealogy records API",
            version=__version__,
            endpoints={
                "auth": "/api/auth",
                "genealogies": "/api/genealogies",
                "persons": "/api/persons",
                "health": "/health",
            },
        )

    return app
