"""Health check endpoints."""

import time
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from distportal import __version__
from distportal.api.schemas.health import (
    ComponentHealth,
    HealthDetailResponse,
    HealthResponse,
    HealthStatus,
)
from distportal.db.config import get_db

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Returns basic liveness status. No authentication required.",
)
async def health_check() -> HealthResponse:
    """Liveness check; 200 whenever the process is serving requests."""
    return HealthResponse(
        status=HealthStatus.HEALTHY,
        version=__version__,
        timestamp=datetime.now(UTC),
    )


@router.get(
    "/health/db",
    response_model=HealthDetailResponse,
    summary="Database health check",
    description="Checks database connectivity. No authentication required.",
)
async def health_db(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> HealthDetailResponse:
    db_health = await _check_database(db)
    return HealthDetailResponse(
        status=db_health.status,
        version=__version__,
        timestamp=datetime.now(UTC),
        database=db_health,
    )


async def _check_database(db: AsyncSession) -> ComponentHealth:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message=f"Database connection failed: {str(e)[:100]}",
            latency_ms=round((time.perf_counter() - start) * 1000, 2),
        )
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message="Database connection successful",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )
