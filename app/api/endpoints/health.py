"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.config import settings
from app.database import check_database_connection
from app.dependencies import Queue

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    ok: bool


class DetailedHealthResponse(BaseModel):
    """Detailed health check response model."""

    status: str
    version: str
    environment: str
    database: str
    queue: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Liveness probe."""
    return HealthResponse(ok=True)


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check(queue: Queue) -> DetailedHealthResponse:
    """
    Detailed health check with database and reminder queue status.

    Returns:
        Detailed health status including dependencies
    """
    db_healthy = await check_database_connection()
    queue_healthy = queue is not None and await queue.ping()

    return DetailedHealthResponse(
        status="healthy" if db_healthy and queue_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        queue="healthy" if queue_healthy else "unhealthy",
    )
