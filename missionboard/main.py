"""missionboard - mission scheduling, workload quota and notification delivery service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from missionboard.core.config import constants, settings
from missionboard.core.db_client import close_connection, init_db
from missionboard.core.logging import configure_logfire, instrument_fastapi
from missionboard.core.scheduler import scheduler, start_scheduler, stop_scheduler
from missionboard.interface.api_router import router as api_router


logger = logging.getLogger(__name__)


def check_email_configuration() -> None:
    """Warn at startup when emails cannot be sent; failed sends will wait in the retry queue."""
    try:
        settings.require_credential("email_api_key", "Email API")
        logger.info("startup_validation", extra={"service": "email", "status": "ok"})
    except ValueError as e:
        logger.warning("startup_validation", extra={"service": "email", "status": "missing", "error": str(e)})


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Startup
    configure_logfire()
    check_email_configuration()

    await init_db()
    logger.info("Database initialized")

    start_scheduler()
    yield
    # Shutdown
    stop_scheduler()
    await close_connection()


app = FastAPI(
    title="missionboard",
    description="Mission scheduling, workload quota and notification delivery",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

# Register routers
app.include_router(api_router)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=constants.HTTP_OK)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with next run times."""
    jobs = {
        job.id: job.next_run_time.isoformat() if job.next_run_time else None
        for job in scheduler.get_jobs()
    }
    healthy = scheduler.running and constants.NOTIFICATION_RETRY_JOB_ID in jobs
    return JSONResponse(
        content={"status": "healthy" if healthy else "degraded", "jobs": jobs},
        status_code=constants.HTTP_OK if healthy else constants.HTTP_SERVICE_UNAVAILABLE,
    )
