from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

from .errors import ConfigurationError, TransportError
from .models import RoutineRequest

logger = logging.getLogger(__name__)


def post_to_relay(
    relay_url: Optional[str],
    payload: RoutineRequest,
    timeout: float = 60.0,
) -> Optional[str]:
    """
    Send one chat request to the relay and return the assistant text.

    ``None`` means the relay answered successfully but the upstream reply
    carried no text.
    """
    if not relay_url:
        raise ConfigurationError("relay endpoint is not configured")

    try:
        resp = requests.post(relay_url, json=payload.to_json(), timeout=timeout)
    except requests.RequestException as exc:
        logger.error("Relay request failed", extra={"relay_url": relay_url, "error": str(exc)})
        raise TransportError(f"relay unreachable: {exc}") from exc

    try:
        data: Dict[str, Any] = resp.json()
    except ValueError as exc:
        raise TransportError(f"relay returned non-JSON (status {resp.status_code})") from exc

    if resp.status_code != 200 or not isinstance(data, dict) or data.get("success") is not True:
        error = data.get("error") if isinstance(data, dict) else None
        details = data.get("details") if isinstance(data, dict) else None
        logger.error(
            "Relay returned an error",
            extra={"status_code": resp.status_code, "error": error, "details": details},
        )
        raise TransportError(f"relay error {resp.status_code}: {error or 'unknown'} {details or ''}".strip())

    result = data.get("result")
    return result if isinstance(result, str) and result else None
