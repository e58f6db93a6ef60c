"""API routes for RotaTV"""

from fastapi import APIRouter

from .health import router as health_router
from .rotation import router as rotation_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(rotation_router, tags=["Rotation"])

__all__ = ["api_router"]
