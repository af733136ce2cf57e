from __future__ import annotations

from fastapi import APIRouter, Depends

from ...core.config import RelaySettings, get_relay_settings

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get(
    "",
    summary="Service health check",
)
async def health_check(cfg: RelaySettings = Depends(get_relay_settings)) -> dict:
    """
    Lightweight liveness probe endpoint.
    Reports whether the upstream credential is configured, never its value.
    """
    return {"status": "ok", "credential_configured": bool(cfg.openai_api_key)}
