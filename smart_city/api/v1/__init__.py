"""API v1 routes."""

from fastapi import APIRouter

from smart_city.api.v1 import accidents, auth, health

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(accidents.router, prefix="/accidents", tags=["accidents"])
