"""
Health check endpoints.
/health always returns 200 and reports database reachability in the body;
/health/ready is the readiness probe.
"""

from typing import Optional

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.config import settings
from app.models.database import async_session_factory

router = APIRouter(tags=["health"])


async def _database_error() -> Optional[str]:
    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        return str(e)[:200]
    return None


@router.get("/health")
async def health_check():
    db_error = await _database_error()
    response = {
        "status": "healthy" if db_error is None else "degraded",
        "version": settings.APP_VERSION,
        "database": "connected" if db_error is None else "unreachable",
    }
    if db_error:
        response["database_error"] = db_error
    return response


@router.get("/health/ready")
async def readiness_check():
    """Readiness probe: 200 only when the database answers."""
    if await _database_error() is None:
        return {"ready": True}
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={"ready": False})
