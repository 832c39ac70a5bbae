"""
FastAPI application main entry point.
"""

import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import (
    auth_router,
    dashboard_router,
    profiles_router,
    scraper_router,
)
from app.core.config import settings
from app.core.database import close_db, init_db, ping_db
from app.core.logging_config import configure_logging
from app.core.observability import capture_exception, init_sentry

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    configure_logging()
    logger.info("Starting ContactPro Backend", environment=settings.environment)

    # Initialize database
    try:
        await init_db()
        logger.info("Database initialized")
    except Exception as e:
        logger.warning("Database initialization failed", error=str(e))

    # Initialize Sentry for error tracking
    try:
        init_sentry()
    except Exception as e:
        logger.warning("Sentry initialization failed", error=str(e))

    yield

    # Shutdown
    logger.info("Shutting down ContactPro Backend")
    await close_db()


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    ContactPro Backend

    Professional contact sharing:
    - Email/password and Google sign-in
    - Points dashboard and contact unlocking
    - Contact profiles with duplicate detection
    - LinkedIn profile import
    """,
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    """Log every request with its status and duration."""
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "Request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 1),
    )
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler; hides error details in production."""
    logger.error("Unhandled error", path=request.url.path, error=str(exc))
    capture_exception(exc, {"path": request.url.path})
    message = "Internal server error" if settings.is_production else str(exc)
    return JSONResponse(status_code=500, content={"message": message})


# Include API routes
app.include_router(auth_router)
app.include_router(dashboard_router)
app.include_router(profiles_router)
app.include_router(scraper_router)


# Health check endpoint
@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint."""
    database_ok = await ping_db()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "unavailable",
        "version": settings.app_version,
        "environment": settings.environment,
    }


# Root endpoint
@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "endpoints": {
            "auth": "/auth",
            "dashboard": "/api/dashboard",
            "profiles": "/profiles",
            "scraper": "/api/scrape-linkedin",
        },
    }
