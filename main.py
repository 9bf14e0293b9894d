import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from invoice_sync.application.use_cases.sync import SyncScheduler
from invoice_sync.domain.exceptions import (
    IntegrationNotFoundException,
    InvoiceSyncException,
    ValidationException,
)
from invoice_sync.infrastructure.config.settings import get_settings
from invoice_sync.infrastructure.persistence.database import engine, get_db
from invoice_sync.presentation.api.dependencies import get_batch_sync_service
from invoice_sync.presentation.api.v1.routes import attachments, integrations, sync
from invoice_sync.shared.telemetry.logging import setup_logging

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for application initialization and cleanup"""
    setup_logging()

    # Database schema is managed by migrations

    scheduler: SyncScheduler | None = None
    if settings.sync_schedule_enabled:
        scheduler = SyncScheduler(get_batch_sync_service(), settings.sync_interval_seconds)
        scheduler.start()
    else:
        logger.info("Scheduled sync disabled in configuration")
    app.state.scheduler = scheduler

    yield

    if scheduler is not None:
        await scheduler.stop()

    await engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    debug=settings.debug,
    lifespan=lifespan,
)


@app.exception_handler(InvoiceSyncException)
async def invoice_sync_exception_handler(request: Request, exc: InvoiceSyncException):
    if isinstance(exc, IntegrationNotFoundException):
        status_code = 404
    elif isinstance(exc, ValidationException):
        status_code = 400
    else:
        status_code = 500
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Routers
app.include_router(
    integrations.router, prefix="/api/v1/integrations", tags=["integrations"]
)
app.include_router(sync.router, prefix="/api/v1/sync", tags=["sync"])
app.include_router(
    attachments.router, prefix="/api/v1/attachments", tags=["attachments"]
)


@app.get("/")
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """
    Health check endpoint for load balancers and monitoring.

    Validates:
    - API is responsive
    - Database connectivity

    Reports whether the sync scheduler is running (informational only).

    Returns:
    - 200 OK if healthy
    - 503 Service Unavailable if unhealthy
    """
    scheduler = getattr(app.state, "scheduler", None)
    checks: dict[str, Any] = {
        "api": True,
        "database": False,
        "scheduler": scheduler.running if scheduler else None,
    }

    try:
        await db.execute(text("SELECT 1"))
        checks["database"] = True

        if checks["api"] and checks["database"]:
            return {"status": "healthy", "checks": checks}
        return JSONResponse(
            status_code=503, content={"status": "unhealthy", "checks": checks}
        )
    except Exception as e:
        checks["error"] = str(e)
        return JSONResponse(
            status_code=503, content={"status": "unhealthy", "checks": checks}
        )
