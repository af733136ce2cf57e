from __future__ import annotations

from fastapi import APIRouter

from .endpoints.health import router as health_router
from .endpoints.root import router as root_router

router = APIRouter()

router.include_router(root_router)
router.include_router(health_router)
