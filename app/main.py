import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy import text

from app.db.base import get_db
from app.core.config import settings
from app.core.logging import configure_logging
from app.routers import cron as cron_router
from app.routers import entities as entities_router
from app.routers import stats as stats_router
from app.routers import catalog as catalog_router
from app.routers import updates as updates_router
from app.core.errors import (
    ObservatoryException,
    observatory_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)
from app.services.update_log import get_last_successful_update

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

if not settings.CRON_SECRET or len(settings.CRON_SECRET) < settings.CRON_SECRET_MIN_LENGTH:
    logger.warning(
        "CRON_SECRET is unset or shorter than %d characters; the update trigger will refuse to run",
        settings.CRON_SECRET_MIN_LENGTH,
    )

app = FastAPI(
    title="Wealth Observatory API",
    description=(
        "**Wealth Observatory**\n\n"
        "Ingests a daily snapshot of the wealthiest individuals from an external "
        "feed, keeps their net-worth history, and translates wealth into "
        "concrete real-world goods and services.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(ObservatoryException, observatory_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(cron_router.router)
app.include_router(entities_router.router)
app.include_router(stats_router.router)
app.include_router(catalog_router.router)
app.include_router(updates_router.router)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok", ...}` when the API and the database
    are reachable, with the time of the last successful update and its age in
    hours (null before the first run). Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        last = get_last_successful_update(db)
    except SQLAlchemyError as exc:
        logger.error("Health check failed: %s", exc)
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": "unreachable"},
        )

    last_update = None
    hours_since_update = None
    if last is not None and last.completed_at is not None:
        completed = _as_utc(last.completed_at)
        last_update = completed.isoformat()
        age = datetime.now(tz=timezone.utc) - completed
        hours_since_update = round(age.total_seconds() / 3600, 2)

    return {
        "status": "ok",
        "db": "ok",
        "env": settings.APP_ENV,
        "last_update": last_update,
        "hours_since_update": hours_since_update,
    }
