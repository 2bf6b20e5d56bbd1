"""API v1 router that aggregates all endpoint routers."""

from fastapi import APIRouter

from cart_recovery.api.v1 import (
    analytics,
    health,
    reminders,
    views,
)

api_router = APIRouter()

# Include all routers
api_router.include_router(
    health.router,
    tags=["Health"],
)

api_router.include_router(
    views.router,
    prefix="/track-view",
    tags=["Views"],
)

api_router.include_router(
    reminders.router,
    prefix="/reminders",
    tags=["Reminders"],
)

api_router.include_router(
    analytics.router,
    prefix="/analytics",
    tags=["Analytics"],
)
