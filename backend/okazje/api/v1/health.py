"""Health check endpoint."""

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from okazje import __version__
from okazje.config import settings
from okazje.db.session import get_db

router = APIRouter()
logger = structlog.get_logger(__name__)


@router.get("/health")
async def health_check(db: AsyncSession = Depends(get_db)) -> dict:
    database = "ok"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("health_database_failed", error=str(e))
        database = "error"

    return {
        "status": "ok" if database == "ok" else "degraded",
        "version": __version__,
        "environment": settings.ENVIRONMENT,
        "database": database,
    }
