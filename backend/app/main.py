import logging
import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import router as auth_router
from app.api.deps import get_db
from app.core.config import APP_VERSION, settings
from app.core.errors import HTTPError, http_error_handler
from app.core.logging import setup_logging
from app.db.session import async_session_maker, engine, init_db
from app.services.login_guard import LoginGuard
from app.services.login_ledger import AttemptLedger
from app.services.scheduler import SchedulerService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    # Setup structured logging first
    setup_logging()

    # Startup
    await init_db()

    ledger = AttemptLedger(async_session_maker)
    login_guard = LoginGuard.from_settings(ledger)
    scheduler_service = SchedulerService(ledger, login_guard.lockout_duration)

    app.state.login_guard = login_guard
    app.state.scheduler_service = scheduler_service

    logger.info("Starting scheduler service")
    scheduler_service.start()

    yield

    # Shutdown
    logger.info("Stopping scheduler service")
    await scheduler_service.stop()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    redirect_slashes=False,
)

# Register custom exception handler for standardized error responses
app.add_exception_handler(HTTPError, http_error_handler)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Add unique request ID for tracking and debugging."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id

    # Bind request_id to all log entries during this request
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=request_id)
    try:
        response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()

    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def add_security_headers(request: Request, call_next):
    """Add OWASP-recommended security headers to all responses."""
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if not settings.DEBUG:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    return response


@app.get("/health")
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """Health check endpoint for container orchestration.

    Returns 200 when the database answers, 503 otherwise. Reports when the
    next login attempt sweep is due.
    """
    checks = {
        "status": "healthy",
        "database": False,
        "next_login_attempt_sweep": None,
    }

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        checks["status"] = "unhealthy"

    scheduler_service = getattr(request.app.state, "scheduler_service", None)
    if scheduler_service is not None:
        next_run = scheduler_service.get_next_run_time()
        checks["next_login_attempt_sweep"] = next_run.isoformat() if next_run else None

    status_code = 200 if checks["database"] else 503
    return JSONResponse(content=checks, status_code=status_code)


app.include_router(auth_router, prefix="/api")
