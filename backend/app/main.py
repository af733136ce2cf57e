from __future__ import annotations

from fastapi import FastAPI

from .api.endpoints.relay import router as relay_router
from .api.router import router as api_router
from .core.config import settings
from .observability import otel
from .observability.logging import setup_logging
from .observability.metrics import MetricsMiddleware, metrics_router
from .observability.middleware import RelayCORSMiddleware, TraceLoggingMiddleware


def create_app() -> FastAPI:
    """
    Application factory.

    - Sets up JSON logging with trace/span IDs
    - Configures OpenTelemetry tracing when enabled
    - Attaches HTTP middlewares (tracing logs, metrics, CORS)
    - Registers the relay at ``/``, versioned API routes and metrics endpoint
    """
    setup_logging()

    app = FastAPI(
        title=settings.app.name,
        version="0.1.0",
        openapi_url="/api/v1/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    otel.init_otel(app)

    app.add_middleware(TraceLoggingMiddleware)
    app.add_middleware(MetricsMiddleware)
    # Added last so it wraps everything and also answers preflights.
    app.add_middleware(RelayCORSMiddleware)

    app.include_router(relay_router)
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(metrics_router)

    return app


app = create_app()
