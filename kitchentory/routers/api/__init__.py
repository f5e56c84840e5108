"""API routes package."""

from fastapi import APIRouter

from kitchentory.routers.api import alerts

# Create main API router with /api prefix
ROUTER = APIRouter(prefix="/api")

ROUTER.include_router(alerts.ROUTER)

__all__ = [
    "alerts",
    "ROUTER",
]
