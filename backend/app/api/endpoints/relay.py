from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...core.config import RelaySettings, get_relay_settings
from ...core.errors import ConfigurationError, RelayError, ValidationError
from ...core.llm import CompletionClient, extract_assistant_text, get_completion_client
from ...observability.logging import get_logger
from ...observability.metrics import RELAY_OUTCOMES
from ...schemas.relay import RelayErrorResponse, RelayRequest, RelayResponse

logger = get_logger("api.relay")

router = APIRouter(tags=["relay"])


def _parse_body(raw: bytes) -> Any:
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValidationError(str(exc)) from exc


def _error_response(exc: RelayError) -> JSONResponse:
    RELAY_OUTCOMES.labels(outcome=exc.error).inc()
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@router.post(
    "/",
    response_model=RelayResponse,
    responses={400: {"model": RelayErrorResponse}, 500: {"model": RelayErrorResponse}},
    summary="Relay a chat request to the completion API.",
)
async def relay_chat(
    request: Request,
    cfg: RelaySettings = Depends(get_relay_settings),
    client: CompletionClient = Depends(get_completion_client),
) -> JSONResponse:
    """
    Forward a chat request upstream with the server-held credential.

    - Missing credential is reported before the body is looked at.
    - ``selected`` products become a ``PRODUCTS_JSON:`` system message.
    - Returns ``{success, result, raw}`` where ``result`` is the first
      choice's text or null.
    """
    try:
        if not cfg.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY not configured in relay environment")

        payload = RelayRequest.from_body(_parse_body(await request.body()))
        body = client.build_body(
            messages=payload.upstream_messages(),
            model=payload.model,
            max_tokens=payload.max_tokens,
            temperature=payload.temperature,
        )
        data = await client.complete(body)
    except RelayError as exc:
        logger.warning(
            "Relay request rejected",
            extra={"error": exc.error, "details": exc.details, "status_code": exc.status_code},
        )
        return _error_response(exc)

    result = extract_assistant_text(data)
    RELAY_OUTCOMES.labels(outcome="success").inc()
    logger.info(
        "Relay request completed",
        extra={
            "model": body["model"],
            "message_count": len(body["messages"]),
            "has_result": result is not None,
        },
    )
    return JSONResponse(content=RelayResponse(result=result, raw=data).model_dump())
