"""FastAPI application initialization."""

from contextlib import asynccontextmanager
from uuid import uuid4

from dotenv import load_dotenv

# Load environment variables before anything else
load_dotenv()

import asyncpg
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from flowdesk import __version__
from flowdesk.api import (
    CorrelationIdMiddleware,
    automations_router,
    planner_router,
    tasks_router,
)
from flowdesk.config import get_settings
from flowdesk.database import (
    DatabaseUnavailableError,
    close_database,
    health_check as db_health_check,
    init_database,
    run_migrations,
)
from flowdesk.services.logging_service import configure_logging
from flowdesk.services.scheduler_service import SchedulerService

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    configure_logging(settings.log_level)

    try:
        await init_database()
        await run_migrations()
        logger.info("database_initialized")
    except Exception as e:
        logger.warning(
            "database_initialization_failed",
            error=str(e),
            note="Continuing without database - task and planner endpoints will fail",
        )

    scheduler_service = None
    if settings.automation_scheduler_enabled:
        scheduler_service = SchedulerService()
        scheduler_service.start()

    logger.info(
        "application_started",
        log_level=settings.log_level,
        timezone=settings.local_timezone,
        scheduler_enabled=settings.automation_scheduler_enabled,
    )

    yield

    if scheduler_service is not None:
        await scheduler_service.stop()

    await close_database()
    logger.info("application_shutdown")


app = FastAPI(
    title="FlowDesk",
    description="Tasks, reminders, automations and the time-block planner",
    version=__version__,
    lifespan=lifespan,
)


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid4())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 with the first offending field and a correlation ID."""
    correlation_id = _correlation_id(request)

    errors = exc.errors()
    if errors:
        first_error = errors[0]
        field = ".".join(str(loc) for loc in first_error.get("loc", ["unknown"]))
        message = first_error.get("msg", "Validation failed")
        detail = f"Field '{field}': {message}"
    else:
        detail = "Request validation failed"

    logger.warning("validation_error", correlation_id=correlation_id, detail=detail)

    return JSONResponse(
        status_code=400,
        content={
            "error": "Validation error",
            "detail": detail,
            "correlation_id": correlation_id,
        },
        headers={"X-Correlation-Id": correlation_id},
    )


@app.exception_handler(asyncpg.PostgresError)
@app.exception_handler(DatabaseUnavailableError)
async def database_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Store failures surface as 500 without leaking driver details."""
    correlation_id = _correlation_id(request)
    logger.error(
        "database_error",
        correlation_id=correlation_id,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return JSONResponse(
        status_code=500,
        content={"error": "Database error", "correlation_id": correlation_id},
        headers={"X-Correlation-Id": correlation_id},
    )


# CORS middleware for browser clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(CorrelationIdMiddleware)

app.include_router(tasks_router)
app.include_router(automations_router)
app.include_router(planner_router)


@app.get("/health")
async def health() -> dict:
    """Liveness plus database connectivity."""
    database_ok = await db_health_check()
    return {"status": "ok" if database_ok else "degraded", "database": database_ok}
