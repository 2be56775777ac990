"""
Student Records API - Main Application Entry Point

This module initializes and configures the FastAPI application including:
- Logging
- Database and Redis connections
- Email validator and its cache sweep job
- Global error handlers
- API routing and health checks
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from student_records.api import api_router
from student_records.core.auth import CurrentUser, require_admin
from student_records.core.config import settings
from student_records.core.database import close_db, init_db
from student_records.core.email_validation import init_email_validator
from student_records.core.exceptions import StudentRecordsError, error_detail
from student_records.core.jobs import register_maintenance_jobs
from student_records.core.redis import close_redis, init_redis
from student_records.core.scheduler import (
    list_registered_jobs,
    pause_job,
    resume_job,
    start_scheduler,
    stop_scheduler,
    trigger_job_manually,
)

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Startup failures are fatal in production and reported otherwise.
    Redis is optional everywhere: rate limiting falls back to memory.
    """
    print(f"Starting Student Records API in {settings.python_env} mode...")

    try:
        await init_redis()
        print("[OK] Redis connected")
    except Exception as e:
        print(f"[FAIL] Redis connection failed, rate limiting uses memory: {e}")

    try:
        await init_db()
        print("[OK] Database connected")
    except Exception as e:
        print(f"[FAIL] Database connection failed: {e}")
        if settings.is_production:
            raise

    init_email_validator()
    print("[OK] Email validator ready")

    try:
        register_maintenance_jobs()
        await start_scheduler()
        print("[OK] Background scheduler started")
    except Exception as e:
        print(f"[FAIL] Background scheduler failed to start: {e}")
        if settings.is_production:
            raise

    yield

    print("Shutting down Student Records API...")

    await stop_scheduler()
    print("[OK] Background scheduler stopped")

    await close_redis()
    await close_db()
    print("[OK] Cleanup complete")


app = FastAPI(
    title="Student Records API",
    description="Role-based student records management API",
    version="0.1.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url="/redoc" if settings.is_development else None,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")

# Credentials are needed for the jwt cookie
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StudentRecordsError)
async def student_records_error_handler(request: Request, exc: StudentRecordsError) -> JSONResponse:
    """Domain errors that escaped a router."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return await unhandled_error_handler(request, exc)
    return JSONResponse(status_code=exc.status_code, content={"detail": error_detail(exc)})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Last-resort handler: a generic message for clients.

    The exception text is included only in development.
    """
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    detail = {
        "error": "INTERNAL_ERROR",
        "message": "An unexpected error occurred. Please try again later.",
    }
    if settings.is_development:
        detail["debug"] = str(exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": detail},
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint - API welcome message."""
    return {
        "message": "Welcome to the Student Records API",
        "status": "running",
        "environment": settings.python_env,
    }


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for container orchestration."""
    return {"status": "healthy"}


@app.get("/ready", tags=["Health"])
async def readiness_check() -> dict[str, str]:
    return {"status": "ready"}


# ============================================
# Background Job Endpoints (admin)
# ============================================


@app.get("/admin/jobs", tags=["Admin - Jobs"])
async def list_jobs(admin: CurrentUser = Depends(require_admin)):
    """List registered background jobs with next run time and pause status."""
    return {"jobs": list_registered_jobs()}


@app.post("/admin/jobs/{job_id}/trigger", tags=["Admin - Jobs"])
async def trigger_job(job_id: str, admin: CurrentUser = Depends(require_admin)):
    """
    Run a background job now, outside its schedule.

    Raises:
        HTTPException 404: If job_id is not registered
    """
    try:
        return await trigger_job_manually(job_id)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "JOB_NOT_FOUND", "message": str(e)},
        ) from e


@app.post("/admin/jobs/{job_id}/pause", tags=["Admin - Jobs"])
async def pause_job_endpoint(job_id: str, admin: CurrentUser = Depends(require_admin)):
    return {"job_id": job_id, "paused": pause_job(job_id)}


@app.post("/admin/jobs/{job_id}/resume", tags=["Admin - Jobs"])
async def resume_job_endpoint(job_id: str, admin: CurrentUser = Depends(require_admin)):
    return {"job_id": job_id, "resumed": resume_job(job_id)}
