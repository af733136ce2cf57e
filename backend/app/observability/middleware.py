from __future__ import annotations

import logging
from typing import Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("advisor.request")

CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
    "Content-Type": "application/json",
}


class TraceLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with trace_id/span_id injected by the logging factory.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        logger.info(
            "Incoming request",
            extra={"path": request.url.path, "method": request.method},
        )
        response = await call_next(request)
        logger.info(
            "Completed request",
            extra={
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
            },
        )
        return response


class RelayCORSMiddleware(BaseHTTPMiddleware):
    """
    Answers every preflight and stamps the fixed CORS header set on every
    response, including error responses.

    Browsers call the relay cross-origin without credentials, so the headers
    are sent whether or not an ``Origin`` header is present.
    """

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            if name == "Content-Type" and name in response.headers:
                continue
            response.headers[name] = value
        return response
