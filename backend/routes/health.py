"""
Health check endpoint.
"""
from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from domain.responses import error_response, success_response
from services import reclamation_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check — verifies database connectivity and reports the scheduler state."""
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=error_response(
                status.HTTP_503_SERVICE_UNAVAILABLE,
                "unhealthy",
                "database_unavailable",
            ),
        )

    return success_response({
        "status": "healthy",
        "databaseConnected": True,
        "schedulerRunning": reclamation_service.get_status()["running"],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })
