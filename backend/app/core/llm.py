from __future__ import annotations

import json
import time
from typing import Any, Dict, List, Optional

import httpx
from fastapi import Depends

from ..observability.logging import get_logger
from ..observability.metrics import UPSTREAM_LATENCY
from .config import RelaySettings, get_relay_settings
from .errors import ConfigurationError, UpstreamError

logger = get_logger("core.llm")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


class CompletionClient:
    """
    Thin async client for an OpenAI-style ``chat/completions`` endpoint.

    The client forwards a fully built request body and returns the decoded
    JSON reply untouched; shaping that reply is the caller's job.
    """

    def __init__(
        self,
        cfg: RelaySettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.cfg = cfg
        self._transport = transport

    def build_body(
        self,
        messages: List[Dict[str, Any]],
        model: Optional[str],
        max_tokens: Optional[int],
        temperature: Optional[float],
    ) -> Dict[str, Any]:
        return {
            "model": model or self.cfg.default_model,
            "messages": messages,
            "max_tokens": max_tokens or self.cfg.default_max_tokens,
            "temperature": (
                temperature if temperature is not None else self.cfg.default_temperature
            ),
        }

    async def complete(self, body: Dict[str, Any]) -> Any:
        if not self.cfg.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY not configured in relay environment")

        headers = {
            "Authorization": f"Bearer {self.cfg.openai_api_key}",
            "Content-Type": "application/json",
        }

        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self.cfg.timeout_seconds,
                transport=self._transport,
            ) as client:
                resp = await client.post(self.cfg.upstream_url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.error(
                "Upstream completion request failed",
                extra={"upstream_url": self.cfg.upstream_url, "error": str(exc)},
            )
            raise UpstreamError(str(exc) or exc.__class__.__name__) from exc
        finally:
            UPSTREAM_LATENCY.observe(time.perf_counter() - start)

        try:
            data = json.loads(resp.content, parse_constant=_reject_constant)
        except ValueError as exc:
            logger.error(
                "Upstream returned non-JSON body",
                extra={"status_code": resp.status_code, "body_preview": resp.text[:300]},
            )
            raise UpstreamError(
                f"Upstream returned non-JSON response (status {resp.status_code})"
            ) from exc

        if resp.status_code != 200:
            # OpenAI-style error payloads are still JSON; pass them through as raw.
            logger.warning(
                "Upstream returned non-200 status",
                extra={"status_code": resp.status_code},
            )
        return data


def extract_assistant_text(data: Any) -> Optional[str]:
    """Return ``choices[0].message.content`` when present and non-empty."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) and content else None


def get_completion_client(cfg: RelaySettings = Depends(get_relay_settings)) -> CompletionClient:
    """FastAPI dependency; tests override it with a mock transport."""
    return CompletionClient(cfg)
