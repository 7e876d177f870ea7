"""
CIRY Backend - FastAPI Application Entry Point

Health and prevention platform: wearables, video consults, appointments,
prevention chat, quizzes and certificates.
"""

from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from core.config import settings
from core.logging import setup_logging, log_request_middleware
from core.database import engine, Base, AsyncSessionLocal
from api.v1 import (
    auth,
    wearable,
    video,
    push,
    notifications,
    appointments,
    triage,
    doctors,
    quizzes,
    certificates,
    content_pages,
    prohmed,
)
from api.v1.management import (
    catalog,
    content_pages as admin_content_pages,
    notifications as admin_notifications,
    settings as admin_settings,
    users as admin_users,
    wearable as admin_wearable,
)
from admin.admin import setup_admin
from services.appointment_reminders import send_pending_reminders
from services.wearable_reports import generate_daily_reports

import models  # noqa: F401  registers every table on Base.metadata

# Setup logging
logger = setup_logging()

scheduler = AsyncIOScheduler()


async def appointment_reminders_job():
    """Send due appointment reminders (every 10 minutes)."""
    try:
        async with AsyncSessionLocal() as session:
            result = await send_pending_reminders(session)
        logger.info("Appointment reminders processed", sent=result["remindersSent"], errors=len(result["errors"]))
    except Exception as e:
        logger.error("Appointment reminders job failed", error=str(e))


async def wearable_reports_job():
    """Generate the daily wearable reports (every 24 hours)."""
    try:
        async with AsyncSessionLocal() as session:
            generated = await generate_daily_reports(session)
        logger.info("Wearable reports generated", count=generated)
    except Exception as e:
        logger.error("Wearable reports job failed", error=str(e))


def start_scheduler():
    scheduler.add_job(
        appointment_reminders_job,
        trigger=IntervalTrigger(minutes=10),
        id="appointment_reminders",
        name="Send appointment reminders",
        replace_existing=True,
    )
    scheduler.add_job(
        wearable_reports_job,
        trigger=IntervalTrigger(hours=24),
        id="wearable_reports",
        name="Generate wearable daily reports",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Background task scheduler started")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info(f"Starting {settings.APP_NAME} application...")

    # Create database tables (for development)
    if settings.ENV == "development":
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created (development mode)")

    if settings.ENABLE_SCHEDULER and not scheduler.running:
        start_scheduler()

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    logger.info(f"Shutting down {settings.APP_NAME} application...")


# Create FastAPI application
app = FastAPI(
    title="CIRY Backend API",
    description="Care & Intelligence Ready for You: health monitoring and prevention platform",
    version=settings.VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    openapi_url="/openapi.json" if settings.DEBUG else None,
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.ENABLE_REQUEST_LOGGING:
    app.middleware("http")(log_request_middleware)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation exceptions."""
    logger.error(
        f"Validation Exception: {exc.errors()} | "
        f"Path: {request.url.path} | "
        f"Method: {request.method} | "
        f"Client: {_client_host(request)}"
    )
    errors = exc.errors()
    user_message = errors[0].get("msg", "Invalid input data") if errors else "Invalid input data"

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "message": user_message,
            "detail": jsonable_errors(errors),
        }
    )


def jsonable_errors(errors):
    """Validation errors may carry exception objects in ``ctx``."""
    cleaned = []
    for error in errors:
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        error.pop("input", None)
        cleaned.append(error)
    return cleaned


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Server Exception: {exc!r} | "
        f"Path: {request.url.path} | "
        f"Method: {request.method} | "
        f"Client: {_client_host(request)}"
    )
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal server error",
            "detail": str(exc) if settings.DEBUG else None,
        }
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    logger.error(
        f"HTTP Exception: {exc.detail} | "
        f"Path: {request.url.path} | "
        f"Method: {request.method} | "
        f"Client: {_client_host(request)}"
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "message": exc.detail,
            "detail": str(exc)
        },
        headers=getattr(exc, "headers", None),
    )


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "ok", "app": settings.APP_NAME, "version": settings.VERSION}


# Include API routers
app.include_router(auth.router, prefix="/api/auth", tags=["Authentication"])
app.include_router(wearable.router, prefix="/api/wearable", tags=["Wearables"])
app.include_router(video.router, prefix="/api/video", tags=["Video"])
app.include_router(push.router, prefix="/api/push", tags=["Push Notifications"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["Notifications"])
app.include_router(appointments.router, prefix="/api/appointments", tags=["Appointments"])
app.include_router(appointments.settings_router, prefix="/api/settings", tags=["Appointments"])
app.include_router(triage.router, prefix="/api/triage", tags=["Prevention Chat"])
app.include_router(triage.user_router, prefix="/api/user", tags=["Prevention Chat"])
app.include_router(doctors.router, prefix="/api/doctor", tags=["Doctors"])
app.include_router(quizzes.router, prefix="/api", tags=["Quizzes"])
app.include_router(certificates.router, prefix="/api/certificates", tags=["Certificates"])
app.include_router(certificates.user_router, prefix="/api/user", tags=["Certificates"])
app.include_router(content_pages.router, prefix="/api/content-pages", tags=["Content Pages"])
app.include_router(prohmed.router, prefix="/api/prohmed-codes", tags=["Prohmed"])

app.include_router(admin_users.router, prefix="/api/admin", tags=["Management"])
app.include_router(admin_settings.router, prefix="/api/admin", tags=["Management"])
app.include_router(admin_wearable.router, prefix="/api/admin", tags=["Management"])
app.include_router(admin_notifications.router, prefix="/api/admin", tags=["Management"])
app.include_router(admin_content_pages.router, prefix="/api/admin", tags=["Management"])
app.include_router(catalog.router, prefix="/api/admin", tags=["Management"])

setup_admin(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )
