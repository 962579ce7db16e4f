"""FastAPI application entry point"""
import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from orphancare.core.config import settings
from orphancare.core.errors import DonationServiceError
from orphancare.core.logging import setup_logging
from orphancare.core.middleware import setup_middleware
from orphancare.core.otel import (
    initialize_otel, instrument_fastapi, instrument_sqlalchemy, setup_otel_logging
)
from orphancare.db.redis import get_redis_client
from orphancare.db.session import engine, init_db
from orphancare.services.email_service import validate_email_config

# Import routers
from orphancare.api import admin, beneficiaries, donations, donor, webhooks

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan event handler for startup and shutdown"""
    # Startup
    otel_initialized = initialize_otel()

    if otel_initialized:
        if setup_otel_logging():
            logger.info(f"OpenTelemetry fully initialized, exporting to {settings.OTEL_EXPORTER_OTLP_ENDPOINT}")
        else:
            logger.warning("OpenTelemetry metrics/traces initialized but logging setup failed")
    else:
        logger.info("OpenTelemetry not configured - running without distributed tracing")

    logger.info("Initializing database...")
    try:
        init_db()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise

    logger.info("Testing Redis connection...")
    try:
        get_redis_client().ping()
        logger.info("Redis connection successful")
    except Exception as e:
        logger.error(f"Redis connection failed: {e}")
        raise

    instrument_sqlalchemy(engine)

    email_ok, email_error = validate_email_config()
    if not email_ok:
        logger.warning(f"Email disabled: {email_error}")

    # Start background tasks
    tasks = []
    if settings.SCHEDULER_ENABLED:
        logger.info("Starting scheduler tasks...")
        from orphancare.tasks.scheduler import (
            monthly_report_scheduler_task, reconciliation_scheduler_task
        )

        tasks.append(asyncio.create_task(reconciliation_scheduler_task()))
        tasks.append(asyncio.create_task(monthly_report_scheduler_task()))
        logger.info("Scheduler tasks started")
    else:
        logger.info("Scheduler disabled")

    yield

    # Shutdown
    logger.info("Shutting down...")
    for task in tasks:
        task.cancel()


# Create FastAPI app
app = FastAPI(
    title="Orphan Care Backend",
    description="Recurring donations for orphan sponsorship",
    version="1.0.0",
    lifespan=lifespan
)

# Instrument FastAPI with OpenTelemetry
instrument_fastapi(app)

# CORS and access logging
setup_middleware(app)

# Include routers
app.include_router(donations.router)
app.include_router(webhooks.router)
app.include_router(beneficiaries.router)
app.include_router(donor.router)
app.include_router(admin.router)


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@app.exception_handler(DonationServiceError)
async def donation_service_exception_handler(request: Request, exc: DonationServiceError):
    """Service errors carry their own HTTP status"""
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        field = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
        message = f"{field}: {errors[0].get('msg')}" if field else errors[0].get("msg", message)
    return _error_response(400, message)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error_response(500, "Internal server error")


# Prometheus metrics endpoint
@app.get("/metrics")
def metrics_endpoint():
    """Prometheus metrics endpoint"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


# Health check endpoint
@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
