"""HR Leave Service: FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from hr_leave.accrual.router import router as accrual_router
from hr_leave.accrual.scheduler import LeaveScheduler
from hr_leave.common.exceptions import register_exception_handlers
from hr_leave.common.rate_limit import limiter
from hr_leave.config import settings
from hr_leave.database import close_db, init_db
from hr_leave.employees.router import router as employees_router
from hr_leave.holidays.router import router as holidays_router
from hr_leave.leave.router import router as leave_router
from hr_leave.notifications.router import router as notifications_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    # Startup
    session_factory = init_db()
    scheduler = None
    if settings.SCHEDULER_ENABLED:
        scheduler = LeaveScheduler(session_factory)
        scheduler.start()
    app.state.scheduler = scheduler
    logger.info("HR Leave Service started (%s)", settings.ENVIRONMENT)
    yield
    # Shutdown
    if scheduler is not None:
        scheduler.shutdown()
    await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="HR Leave Service",
        description="Leave balances, accrual, and leave request validation",
        version="1.0.0",
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers (RFC 7807)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth)
    @app.get("/api/v1/health", tags=["system"])
    async def health_check(request: Request):
        scheduler = getattr(request.app.state, "scheduler", None)
        return {
            "status": "healthy",
            "version": "1.0.0",
            "environment": settings.ENVIRONMENT,
            "scheduler": scheduler.job_status() if scheduler is not None else [],
        }

    # Register routers
    app.include_router(leave_router, prefix="/api/v1/leave", tags=["leave"])
    app.include_router(employees_router, prefix="/api/v1/employees", tags=["employees"])
    app.include_router(holidays_router, prefix="/api/v1/holidays", tags=["holidays"])
    app.include_router(accrual_router, prefix="/api/v1/accrual", tags=["accrual"])
    app.include_router(notifications_router, prefix="/api/v1/notifications", tags=["notifications"])

    return app


app = create_app()
