"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from cart_recovery import __version__
from cart_recovery.config import Settings, get_settings
from cart_recovery.dependencies import get_cache
from cart_recovery.infrastructure.redis import CacheService

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str
    timestamp: str
    dependencies: dict[str, Any]


class ReadinessResponse(BaseModel):
    """Readiness check response model."""

    ready: bool
    checks: dict[str, bool]


@router.get("/health", response_model=HealthResponse)
async def health_check(settings: Settings = Depends(get_settings)) -> HealthResponse:
    """
    Basic health check endpoint.

    Returns the service status, version and how reminders are delivered.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
        environment=settings.app_env,
        timestamp=datetime.now(timezone.utc).isoformat(),
        dependencies={
            "postgres": "configured",
            "redis": "configured",
            "sms_provider": settings.sms_provider,
            "dry_run": settings.reminder_dry_run,
        },
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    settings: Settings = Depends(get_settings),
    cache: CacheService = Depends(get_cache),
) -> ReadinessResponse:
    """
    Readiness check endpoint.

    Redis is optional (the scan lock and summary cache degrade to no-ops),
    so only the credentials the reminder pipeline cannot work without
    decide readiness.
    """
    checks: dict[str, bool] = {
        "redis": await cache.health_check(),
        "openai_configured": bool(settings.openai_api_key),
        "sms_configured": settings.reminder_dry_run
        or settings.sms_provider == "mock"
        or bool(settings.twilio_account_sid and settings.twilio_auth_token),
    }

    return ReadinessResponse(
        ready=checks["openai_configured"] and checks["sms_configured"],
        checks=checks,
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, str]:
    """
    Liveness check endpoint.

    Simple endpoint that returns 200 if the service is running.
    """
    return {"status": "alive"}
