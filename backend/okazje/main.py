"""Okazje+ ingestion service -- FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from okazje import __version__
from okazje.api.v1.router import api_v1_router
from okazje.config import settings
from okazje.core.logging import configure_logging
from okazje.db.session import async_session_factory, engine
from okazje.models.base import Base
from okazje.scheduler import ImportScheduler
from okazje.services.indexing import get_indexing_queue
from okazje.vendors.factory import get_adapter_factory

configure_logging()
logger = structlog.get_logger(__name__)

scheduler: Optional[ImportScheduler] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    global scheduler

    logger.info(
        "api_starting",
        environment=settings.ENVIRONMENT,
        debug=settings.DEBUG,
        vendors=get_adapter_factory().get_registered_vendors(),
    )

    try:
        # Import all models so they register with Base.metadata
        import okazje.models  # noqa: F401

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_ready")
    except SQLAlchemyError as e:
        logger.error("database_init_failed", error=str(e), exc_info=True)

    if settings.SCHEDULER_ENABLED and settings.ENVIRONMENT != "test":
        scheduler = ImportScheduler(
            async_session_factory,
            interval_minutes=settings.SCHEDULER_INTERVAL_MINUTES,
        )
        scheduler.start()
        try:
            jobs_count = await scheduler.load_profile_jobs()
            logger.info("scheduler_ready", jobs=jobs_count)
        except SQLAlchemyError as e:
            logger.error("scheduler_load_failed", error=str(e), exc_info=True)
    else:
        logger.info("scheduler_disabled")

    yield

    logger.info("api_stopping")
    if scheduler:
        scheduler.stop()
        scheduler = None
    await get_indexing_queue().close()


app = FastAPI(
    title="Okazje+ Ingest API",
    description="Multi-vendor product ingestion for the Okazje+ catalog",
    version=__version__,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)

app.include_router(api_v1_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Okazje+ Ingest API",
        "version": __version__,
        "docs": "/docs" if settings.DEBUG else None,
        "health": "/api/v1/health",
    }
