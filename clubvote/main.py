"""FastAPI application entrypoint."""
from __future__ import annotations

from fastapi import FastAPI

from clubvote.api.routes import register_routes
from clubvote.core.config import Settings, get_settings
from clubvote.core.logging import configure_logging
from clubvote.obs import (
    PrometheusMiddleware,
    initialise_tracing,
    instrument_fastapi_app,
    metrics_router,
)


def create_application(settings: Settings | None = None) -> FastAPI:
    """Application factory used by ASGI servers and tests."""
    configure_logging()
    settings = settings or get_settings()
    if not settings.webhook_secret:
        raise RuntimeError("WEBHOOK_SECRET must be set before the API can accept ballot submissions")

    if settings.enable_tracing:
        initialise_tracing(service_name=settings.app_name, endpoint=settings.otel_exporter_endpoint)

    application = FastAPI(
        title=settings.app_name,
        version=settings.version,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
    )

    if settings.enable_metrics:
        application.add_middleware(PrometheusMiddleware)
        application.include_router(metrics_router)
    register_routes(application)

    if settings.enable_tracing:
        instrument_fastapi_app(application)

    return application


app = create_application()
