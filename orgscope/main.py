"""Main FastAPI application."""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__
from .api import audit_router, hierarchy_router, permissions_router, users_router
from .core.config import ConfigurationError, Environment, settings
from .core.logging_config import mask_url, setup_logging
from .database import DATABASE_URL, SessionLocal, create_schema, engine, get_db, is_postgresql
from .exceptions import OrgScopeError
from .middleware.exception_handler import (
    database_exception_handler,
    orgscope_exception_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from .middleware.request_context import RequestContextMiddleware
from .services import audit_service

setup_logging(log_level=settings.log_level, log_format=settings.log_format)
logger = logging.getLogger(__name__)


def _validate_database_connection() -> None:
    """Check the database answers ``SELECT 1``. Exits the process on failure."""
    masked = mask_url(DATABASE_URL)
    logger.info("Connecting to database: %s", masked)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        if is_postgresql():
            hint = "Check that PostgreSQL is running and DATABASE_URL is correct."
        else:
            hint = "Check that the database directory exists and is writable."
        logger.critical("Database connection failed (%s). %s Error: %s", masked, hint, e)
        raise SystemExit(1) from e
    logger.info("Database connection verified")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: verify the database, create missing tables, check config, purge audit."""
    logger.info("Environment: %s", settings.environment.value)
    try:
        settings.validate_production_config()
    except ConfigurationError as e:
        logger.critical("STARTUP BLOCKED: %s", e)
        raise SystemExit(1) from e

    if settings.environment == Environment.DEVELOPMENT:
        origins = settings.get_cors_origins()
        localhost_origins = [o for o in origins if "localhost" in o or "127.0.0.1" in o]
        if localhost_origins:
            logger.warning(
                "CORS allows localhost origins: %s. Remove these for production.",
                localhost_origins,
            )

    _validate_database_connection()

    created = create_schema()
    if created:
        logger.info("Created tables: %s", ", ".join(created))

    if settings.audit_retention_days > 0:
        db = SessionLocal()
        try:
            purged = audit_service.purge_old_entries(db, days=settings.audit_retention_days)
            if purged > 0:
                logger.info(
                    "Purged %d audit log entries older than %d days",
                    purged, settings.audit_retention_days,
                )
        finally:
            db.close()

    logger.info(
        "orgscope API started | env=%s | db=%s | max_depth=%d",
        settings.environment.value,
        "PostgreSQL" if is_postgresql() else "SQLite",
        settings.max_hierarchy_depth,
    )
    yield


app = FastAPI(
    title="orgscope API",
    description=(
        "Organisational hierarchy and scoped access control. "
        "Structures form a tree addressed by materialised paths; a grant on a "
        "structure lets a user see that structure, everything below it, and "
        "the users granted there."
    ),
    version=__version__,
    lifespan=lifespan,
)

# Outermost first: CORS wraps request context.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "X-Request-ID"],
)
app.add_middleware(RequestContextMiddleware)

app.add_exception_handler(OrgScopeError, orgscope_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_handler)
app.add_exception_handler(SQLAlchemyError, database_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.include_router(hierarchy_router)
app.include_router(permissions_router)
app.include_router(users_router)
app.include_router(audit_router)


@app.get("/")
def root():
    return {
        "name": "orgscope API",
        "version": __version__,
        "status": "running",
    }


_startup_time = time.monotonic()


@app.get("/health")
def health_check(db: Session = Depends(get_db)):
    """Database status, uptime and structure count.

    Never raises: a failing database reports ``degraded`` so probes still
    get a 200.
    """
    db_status = "ok"
    structure_count = 0
    try:
        structure_count = db.execute(text("SELECT COUNT(*) FROM organisation_structures")).scalar() or 0
    except SQLAlchemyError:
        logger.warning("Health check query failed", exc_info=True)
        db_status = "error"

    return {
        "status": "healthy" if db_status == "ok" else "degraded",
        "db": db_status,
        "uptime_seconds": round(time.monotonic() - _startup_time),
        "version": __version__,
        "structure_count": structure_count,
    }
