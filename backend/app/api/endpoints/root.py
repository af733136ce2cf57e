from __future__ import annotations

from fastapi import APIRouter

from ...core.config import settings

router = APIRouter()


@router.get(
    "/",
    tags=["root"],
    summary="API root – basic sanity check",
)
async def root() -> dict:
    """
    Basic root endpoint for API v1.
    The relay itself is served at ``POST /``.
    """
    return {
        "message": f"{settings.app.name} API",
        "version": "v1",
    }
