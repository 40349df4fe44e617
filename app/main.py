"""Main FastAPI application."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from app.api.v1 import api_router
from app.config import Settings, settings as default_settings
from app.core.cache import CacheManager
from app.core.exceptions import register_exception_handlers
from app.core.logging import setup_logging
from app.db.session import Database

logger = structlog.get_logger(__name__)


def init_sentry(settings: Settings) -> None:
    """Initialize Sentry for error tracking (only if DSN is properly configured)."""
    if not (settings.SENTRY_DSN and settings.SENTRY_DSN.startswith("https://")):
        logger.info("sentry_disabled")
        return

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            LoggingIntegration(
                level=None,  # Capture all logs
                event_level="ERROR",  # Only send ERROR and above as events
            ),
        ],
        release=settings.APP_VERSION,
        attach_stacktrace=True,
        send_default_pii=False,  # Don't send personally identifiable info
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    The database handle and cache manager are created here and opened in
    the lifespan, so nothing connects at import time.
    """
    settings = settings or default_settings

    setup_logging(settings)
    init_sentry(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        await app.state.db.open()
        if settings.DATABASE_AUTO_CREATE:
            await app.state.db.create_all()
        app.state.cache.connect()
        logger.info("application_started", environment=settings.ENVIRONMENT)
        yield
        # Shutdown
        app.state.cache.disconnect()
        await app.state.db.close()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Student profiles, goals, activities, surveys and groups",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        swagger_ui_parameters={
            "persistAuthorization": True,  # Persist authorization after page refresh
        },
    )
    app.state.settings = settings
    app.state.db = Database.from_settings(settings)
    app.state.cache = CacheManager(settings)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        logger.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
            request_id=request_id,
        )
        response.headers["X-Request-ID"] = request_id
        return response

    register_exception_handlers(app)

    # Include API router
    app.include_router(api_router, prefix="/api/v1")

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint."""
        return {
            "success": True,
            "message": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "operational",
        }

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint with database and cache status."""
        database = await request.app.state.db.health_check()
        healthy = database["status"] == "healthy"
        health_data = {
            "success": healthy,
            "status": "healthy" if healthy else "unhealthy",
            "environment": settings.ENVIRONMENT,
            "database": database,
            "cache": request.app.state.cache.get_stats(),
        }
        return JSONResponse(status_code=200 if healthy else 503, content=health_data)

    return app


app = create_app()
