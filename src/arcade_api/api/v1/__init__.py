from fastapi import APIRouter

from .endpoints import (
    admin,
    auth,
    health,
    promotions,
    rewards,
    user,
)

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(auth.router)
router.include_router(promotions.router)
router.include_router(rewards.router)
router.include_router(user.router)
router.include_router(admin.router)
