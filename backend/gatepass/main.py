"""
FastAPI application entry point for the gatepass service.

This is the main app that:
- Initializes FastAPI with CORS
- Builds the engine, store, notifier and lifecycle manager on startup
- Maps gatepass errors to HTTP responses
- Provides health check endpoint
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gatepass.config import Settings, settings as default_settings
from gatepass.database import build_engine, build_session_factory, create_tables
from gatepass.api import gatepasses
from gatepass.services.email import EmailNotifier
from gatepass.services.exceptions import (
    ConflictError,
    GatepassError,
    InvalidInputError,
    NotFoundError,
    TransientError,
)
from gatepass.services.lifecycle import LifecycleManager
from gatepass.services.notifications import NotificationDispatcher
from gatepass.services.store import GatepassStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def build_lifecycle_manager(settings: Settings, session_factory) -> LifecycleManager:
    """Wire store, notifier and dispatcher into a manager."""
    store = GatepassStore(session_factory, timeout_seconds=settings.db_timeout_seconds)
    dispatcher = NotificationDispatcher(EmailNotifier(settings))
    return LifecycleManager(
        store=store,
        dispatcher=dispatcher,
        app_base_url=settings.get_app_base_url(),
        student_email_domain=settings.student_email_domain,
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for startup and shutdown events.

        On startup: build engine and services, start the notification dispatcher
        On shutdown: drain notifications, close database connections gracefully
        """
        # Startup
        logger.info("🚀 Starting Gatepass API...")
        logger.info(f"📊 Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else settings.database_url}")
        logger.info(f"📧 Email mode: {settings.email_mode}")

        engine = build_engine(settings.database_url, echo=settings.debug)
        if settings.auto_create_tables:
            await create_tables(engine)

        lifecycle = build_lifecycle_manager(settings, build_session_factory(engine))
        lifecycle.dispatcher.start()
        app.state.lifecycle = lifecycle

        yield

        # Shutdown
        logger.info("👋 Shutting down Gatepass API...")
        await lifecycle.dispatcher.stop()
        await engine.dispose()

    app = FastAPI(
        title="Gatepass API",
        description="API for student gatepass requests, parent approval and warden review",
        version="1.0.0",
        debug=settings.debug,
        lifespan=lifespan,
    )

    # Configure CORS
    # Set ALLOWED_ORIGINS environment variable with comma-separated domains
    allowed_origins = [
        "http://localhost:3000",  # Local development
    ]
    if settings.allowed_origins:
        allowed_origins.extend(origin.strip() for origin in settings.allowed_origins.split(','))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GatepassError)
    async def gatepass_error_handler(request: Request, exc: GatepassError):
        if isinstance(exc, InvalidInputError):
            return JSONResponse(status_code=422, content={"detail": exc.message, "errors": exc.errors})
        if isinstance(exc, NotFoundError):
            return JSONResponse(status_code=404, content={"detail": exc.message})
        if isinstance(exc, ConflictError):
            content = {"detail": "Request already processed", "message": exc.message}
            if exc.request is not None:
                content["status"] = exc.request.status.value
            return JSONResponse(status_code=409, content=content)
        if isinstance(exc, TransientError):
            return JSONResponse(
                status_code=503,
                content={"detail": exc.message},
                headers={"Retry-After": "1"},
            )
        logger.error(f"Unhandled gatepass error: {exc.message}")
        return JSONResponse(status_code=500, content={"detail": exc.message})

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Simple health check endpoint."""
        return {
            "status": "healthy",
            "service": "Gatepass API",
            "version": "1.0.0",
        }

    # Root endpoint
    @app.get("/")
    async def root():
        """API root with basic info."""
        return {
            "message": "Gatepass API",
            "version": "1.0.0",
            "docs": "/docs",
            "health": "/health",
        }

    # Register API routers
    app.include_router(gatepasses.router, prefix="/api/gatepasses", tags=["gatepasses"])

    return app


app = create_app()
