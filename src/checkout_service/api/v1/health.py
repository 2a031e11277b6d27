"""Health check endpoints."""

from datetime import datetime, timezone

import redis.asyncio as aioredis
import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from checkout_service import __version__
from checkout_service.api.v1.dependencies import get_checkout_repository
from checkout_service.config import Settings, get_settings
from checkout_service.infrastructure.database.repository import CheckoutRepository
from checkout_service.infrastructure.redis import get_redis_client, redis_healthy

logger = structlog.get_logger()

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    timestamp: str


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns the service status and version information.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    repository: CheckoutRepository = Depends(get_checkout_repository),
    redis_client: aioredis.Redis | None = Depends(get_redis_client),
) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Verifies PostgreSQL (attempt storage) and Redis (reminder worker broker).
    """
    checks: dict[str, bool] = {}

    try:
        checks["postgres"] = await repository.ping()
    except Exception as e:
        logger.warning("Readiness check failed", dependency="postgres", error=str(e))
        checks["postgres"] = False

    checks["redis"] = await redis_healthy(redis_client)

    return ReadinessResponse(ready=all(checks.values()), checks=checks)


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """Returns 200 while the process is serving requests."""
    return {"status": "alive"}
