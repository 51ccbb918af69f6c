from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from app.routers import account_router, logbook_router
from app.database import engine, init_db
from app.exceptions import LogbookError
from app.utils.scheduler import TaskScheduler
from app.utils.logging_config import setup_logging, get_log_files_info
from app.config import get_settings
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
import logging

# Setup comprehensive logging
logs_dir = setup_logging()
logger = logging.getLogger(__name__)

settings = get_settings()
scheduler = TaskScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Internship Logbook service...")
    init_db()
    if settings.enable_scheduler:
        scheduler.start()
    else:
        logger.info("Scheduler disabled by configuration")
    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down...")
    scheduler.stop()
    logger.info("Application stopped")


app = FastAPI(
    title="Internship Logbook",
    description="Daily logbook entries, weekly submission and mentor review for interns",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LogbookError)
async def logbook_error_handler(request: Request, exc: LogbookError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Include routers
app.include_router(account_router.router)
app.include_router(logbook_router.router)


@app.get("/")
async def root():
    return {
        "message": "Internship Logbook API",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError as e:
        logger.error(f"Health check could not reach the database: {e}")
        database = "unavailable"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "database": database,
        "scheduler": "running" if scheduler.scheduler.running else "stopped"
    }


@app.get("/logs/info")
async def logs_info():
    """Get information about current log files."""
    return {
        "logs_directory": str(logs_dir.absolute()),
        "log_files": get_log_files_info()
    }
