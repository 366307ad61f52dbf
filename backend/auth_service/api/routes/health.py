"""Health check route probing the database connection."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth_service.core.logging import logger
from auth_service.db.session import get_db, ping_database

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(db: AsyncSession = Depends(get_db)):
    """Return ``ok`` with the database time, or 503 if the database is down."""

    try:
        db_time = await ping_database(db)
    except (SQLAlchemyError, OSError) as exc:
        # Drivers such as asyncpg raise OSError on refused connections.
        # SQLAlchemy does not wrap those errors.
        logger.error("Healthcheck database probe failed: {}", exc)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "error", "message": "Database connection failed"},
        )
    return {"status": "ok", "timestamp": str(db_time)}
