"""FastAPI application setup."""

import logging
import uuid
from contextlib import asynccontextmanager

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from recruitq import __version__
from recruitq.api import error_handlers
from recruitq.api.routes import health, jobs, queues
from recruitq.core.config import settings
from recruitq.core.errors import RecruitQError
from recruitq.db.session import get_session_factory
from recruitq.middleware.rate_limit import limiter
from recruitq.workers.manager import build_queue_manager

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Initialize Sentry for error tracking (if DSN is configured)
if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=0.1 if settings.app_env == "production" else 1.0,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        release=f"recruitq@{__version__}",
        send_default_pii=False,
        attach_stacktrace=settings.app_env != "production",
    )
    logger.info(f"Sentry initialized for environment: {settings.app_env}")
else:
    logger.info("Sentry not configured (SENTRY_DSN not set)")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Builds the queue manager unless one was installed on app.state beforehand
    and reconciles the queues with RQ. Jobs run in the RQ worker processes
    (worker.py), so there is nothing to drain here on exit.
    """
    logger.info(f"Starting {settings.app_name}")
    logger.info(f"Environment: {settings.app_env}")

    manager = getattr(app.state, "queue_manager", None)
    if manager is None:
        manager = build_queue_manager(get_session_factory())
        app.state.queue_manager = manager

    await manager.start_all()

    yield

    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Asynchronous AI job queue for recruiting workflows",
    version=__version__,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

# Configure rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS middleware - restrict to configured origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

logger.info(f"CORS allowed origins: {settings.get_allowed_origins()}")


# Request ID middleware
@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request, reusing the caller's when given."""
    request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-ID"] = request.state.request_id
    return response


# Security headers middleware
@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    if settings.app_env == "production":
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


# Register error handlers
app.add_exception_handler(RecruitQError, error_handlers.recruitq_error_handler)
app.add_exception_handler(Exception, error_handlers.generic_exception_handler)
app.add_exception_handler(RequestValidationError, error_handlers.validation_exception_handler)
app.add_exception_handler(ValidationError, error_handlers.validation_exception_handler)
app.add_exception_handler(ValueError, error_handlers.value_error_handler)

# Include all route modules
app.include_router(health.router, prefix="/api/v1")
app.include_router(queues.router, prefix="/api/v1")
for router in jobs.routers:
    app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": __version__,
        "description": "Asynchronous AI job queue for recruiting workflows",
        "status": "running",
        "docs": "/api/docs",
        "health": "/api/v1/queues/health",
    }
