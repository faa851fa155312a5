"""API v1 module."""

from fastapi import APIRouter

from trekmate.api.v1 import (
    ai,
    auth,
    clubs,
    health,
    sos,
    treks,
    users,
)

router = APIRouter()

router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(treks.router, prefix="/treks", tags=["treks"])
router.include_router(clubs.router, prefix="/clubs", tags=["clubs"])
router.include_router(sos.router, tags=["sos"])
router.include_router(ai.router, prefix="/ai", tags=["ai"])
