# FastAPI application factory with lifespan management.
# Entrypoint: uvicorn insurance_gateway.main:create_app --factory --port 3000
#             (or the `insurance-gateway` console script, which reads HOST/PORT)

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from insurance_gateway.auth import APIKeyMiddleware
from insurance_gateway.config import Settings, get_settings
from insurance_gateway.exceptions import register_exception_handlers
from insurance_gateway.logging_config import configure_logging
from insurance_gateway.middleware import RequestContextMiddleware
from insurance_gateway.rate_limit import configure_limit, limiter, rate_limit_exceeded_handler
from insurance_gateway.routes import health, recommendation, user
from insurance_gateway.services.backend import SupabaseBackend

logger = structlog.get_logger(__name__)

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import TracerProvider


def _configure_otel(exporter_type: str) -> "TracerProvider | None":
    """Configure OpenTelemetry tracing. Only the console exporter is supported."""
    if exporter_type != "console":
        logger.warning("unknown_otel_exporter", exporter=exporter_type)
        return None

    from opentelemetry import trace
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

    provider = TracerProvider()
    provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)
    logger.info("otel_configured", exporter=exporter_type)
    return provider


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Connect the backend client on startup; flush spans on shutdown."""
    settings: Settings = app.state.settings

    otel_provider = None
    otel_exporter = os.environ.get("OTEL_EXPORTER", "")
    if otel_exporter:
        otel_provider = _configure_otel(otel_exporter)

    if settings.backend_configured:
        app.state.backend = await SupabaseBackend.connect(settings)
    else:
        logger.warning(
            "backend_not_configured",
            hint="Set SUPABASE_URL and SUPABASE_KEY. Backend routes will answer 500.",
        )

    yield

    if otel_provider is not None:
        otel_provider.shutdown()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Application factory. Invoked by: uvicorn insurance_gateway.main:create_app --factory"""
    settings = settings or get_settings()
    configure_logging(log_level=settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Insurance Recommendation Gateway",
        description="API-key gated, rate-limited gateway to the recommendation backend",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.backend = None

    configure_limit(settings.rate_limit)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)  # type: ignore[arg-type]

    # Middleware order (Starlette applies in reverse): CORS → RequestContext → APIKey
    api_keys = settings.api_key_set
    app.add_middleware(APIKeyMiddleware, api_keys=api_keys)
    if api_keys:
        logger.info("api_key_auth_enabled", keys=len(api_keys))
    else:
        logger.warning(
            "api_key_allow_list_empty",
            hint="Set API_KEYS. Every request to a protected route will get 403.",
        )

    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.application_url],
        allow_methods=["POST", "GET", "OPTIONS"],
        allow_headers=["Content-Type", "X-API-Key"],
    )

    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(recommendation.router, prefix="/recommendation", tags=["recommendation"])
    app.include_router(user.router, prefix="/user", tags=["user"])

    return app


def run() -> None:
    """Console-script entrypoint: serve on HOST:PORT."""
    settings = get_settings()
    uvicorn.run(
        "insurance_gateway.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        log_config=None,
    )
