"""
Health check endpoints
"""

from typing import Any
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.core.database import get_session
from app.core.metrics import metrics_collector
from app.config import settings

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/live")
async def liveness() -> Any:
    """
    Kubernetes liveness probe
    """
    return {"status": "alive", "service": "seatplan-api"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session)
) -> Any:
    """
    Kubernetes readiness probe - checks the database
    """
    checks = {
        "database": False,
        "api": True
    }

    try:
        result = await db.execute(text("SELECT 1"))
        checks["database"] = result.scalar() == 1
    except SQLAlchemyError as e:
        logger.warning(f"Readiness database check failed: {e}")

    all_healthy = all(checks.values())

    return {
        "status": "ready" if all_healthy else "not ready",
        "checks": checks,
        "version": settings.APP_VERSION
    }


@router.get("/metrics")
async def engine_metrics() -> Any:
    """
    Plan engine counters and mutation latency percentiles
    """
    return await metrics_collector.get_metrics()
