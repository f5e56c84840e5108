"""Routers package."""

from kitchentory.routers.api import ROUTER as api_router

__all__ = ["api_router"]
