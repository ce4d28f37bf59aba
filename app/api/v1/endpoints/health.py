"""Health check endpoints."""

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from app.config import settings
from app.core.redis_client import check_redis_connection
from app.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Health of the service and each backing dependency."""

    database: str
    redis: str
    payment_gateway: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """
    Basic liveness check.

    Returns:
        Basic health status
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check(response: Response) -> DetailedHealthResponse:
    """
    Readiness check over the database, Redis and gateway configuration.

    Bookings cannot be served without the database, so its loss answers 503.
    Redis only backs the schedule cache; losing it degrades the service.

    Returns:
        Detailed health status including dependencies
    """
    db_healthy = await check_database_connection()
    redis_healthy = await check_redis_connection()
    gateway_configured = bool(settings.razorpay_key_id and settings.razorpay_key_secret)

    if not db_healthy:
        overall = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif not redis_healthy or not gateway_configured:
        overall = "degraded"
    else:
        overall = "healthy"

    return DetailedHealthResponse(
        status=overall,
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        redis="healthy" if redis_healthy else "unhealthy",
        payment_gateway="configured" if gateway_configured else "not_configured",
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
