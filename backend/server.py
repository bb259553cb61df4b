from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from pydantic import ValidationError as PydanticValidationError
from contextlib import asynccontextmanager
from database import database
from errors import AppError
from routes import users, oauth, designs, templates, favorites, teams, payment, ai, api_keys, activity, analytics, admin, files

import os
import logging
from pathlib import Path
from dotenv import load_dotenv
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.jobstores.mongodb import MongoDBJobStore

# Load environment variables
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Scheduler with a MongoDB job store so jobs survive restarts
mongo_url = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
db_name = os.environ.get('DB_NAME', 'matty_ai')

try:
    from pymongo import MongoClient
    mongo_client = MongoClient(mongo_url)
    jobstores = {
        'default': MongoDBJobStore(
            database=db_name,
            collection='scheduled_jobs',
            client=mongo_client
        )
    }
    logger.info(f"MongoDB job store configured: {db_name}.scheduled_jobs")
except Exception as e:
    logger.warning(f"Failed to configure MongoDB job store, using memory store: {e}")
    jobstores = {}

scheduler = AsyncIOScheduler(jobstores=jobstores)

from job_runner import run_premium_expiry_sweep, run_invitation_purge


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Matty AI API")
    await database.connect()

    run_scheduler = not os.environ.get("PYTEST_RUNNING")
    if run_scheduler:
        # Hourly: drop premium for lapsed subscriptions
        scheduler.add_job(
            run_premium_expiry_sweep,
            CronTrigger(minute=0),
            id="premium_expiry_sweep",
            name="Premium Expiry Sweep",
            replace_existing=True
        )

        # Daily at 03:00 UTC: pull expired team invitations
        scheduler.add_job(
            run_invitation_purge,
            CronTrigger(hour=3, minute=0),
            id="invitation_purge",
            name="Expired Invitation Purge",
            replace_existing=True
        )

        scheduler.start()
        logger.info("Background job scheduler started")

    yield

    # Shutdown
    logger.info("Shutting down Matty AI API")
    if run_scheduler:
        scheduler.shutdown(wait=False)
        logger.info("Background job scheduler stopped")
    await database.close()

# Create FastAPI app
app = FastAPI(
    title="Matty AI API",
    description="Online graphic design tool with AI assistance",
    version="1.0.0",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_credentials=True,
    allow_origins=os.environ.get('CORS_ORIGINS', 'http://localhost:5173').split(','),
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(users.router)
app.include_router(oauth.router)
app.include_router(designs.router)
app.include_router(templates.router)
app.include_router(favorites.router)
app.include_router(teams.router)
app.include_router(payment.router)
app.include_router(ai.router)
app.include_router(api_keys.router)
app.include_router(activity.router)
app.include_router(analytics.router)
app.include_router(admin.router)
app.include_router(files.router)

# Root endpoint
@app.get("/api")
async def root():
    return {
        "service": "Matty AI",
        "version": "1.0.0",
        "status": "operational"
    }

# Health check
@app.get("/api/health")
async def health_check():
    return {
        "status": "healthy",
        "environment": os.getenv("ENVIRONMENT", "development")
    }


def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message},
        headers=headers,
    )


def _validation_message(errors) -> str:
    """First failing field as `field: reason`."""
    if not errors:
        return "Invalid request"
    first = errors[0]
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path", "form")]
    field = ".".join(loc)
    msg = first.get("msg", "Invalid value")
    return f"{field}: {msg}" if field else msg


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(exc.status_code, message, getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning(
        "Validation failed path=%s errors=%s",
        request.url.path,
        [(e.get("loc"), e.get("msg"), e.get("type")) for e in errors],
    )
    return _error_response(400, _validation_message(errors))


# Model validation raised from inside a service (e.g. an over-long tag)
@app.exception_handler(PydanticValidationError)
async def model_validation_handler(request: Request, exc: PydanticValidationError):
    return _error_response(400, _validation_message(exc.errors()))


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return _error_response(500, "Internal server error")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "server:app",
        host="0.0.0.0",
        port=8001,
        reload=os.getenv("ENVIRONMENT") == "development"
    )
