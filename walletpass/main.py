"""Main FastAPI application for the wallet pass service."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from walletpass.config import settings
from walletpass.api.passes import router as passes_router
from walletpass.api.platforms import router as platforms_router
from walletpass.errors import add_exception_handlers
from walletpass.middleware import (
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    MetricsMiddleware,
    RateLimitMiddleware,
    get_metrics
)
from walletpass.models.api_models import HealthResponse
from walletpass.observability import (
    setup_observability,
    instrument_fastapi_app,
    TracingContextMiddleware
)

SERVICE_NAME = "wallet-pass-service"
SERVICE_VERSION = "1.0.0"

logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    logger.info(
        "Starting wallet pass service",
        port=settings.port,
        host=settings.host,
        default_platform=settings.default_platform
    )

    setup_observability(
        service_name=SERVICE_NAME,
        service_version=SERVICE_VERSION,
        otlp_endpoint=settings.otlp_endpoint,
        enable_console_export=settings.enable_console_export
    )
    instrument_fastapi_app(app)

    if settings.expose_verification_code:
        logger.warning("Verification codes are returned in API responses (demo mode)")

    yield

    logger.info("Shutting down wallet pass service")


app = FastAPI(
    title="Wallet Pass Service",
    description="Fan wallet pass issuance with phone verification and Apple/Google Wallet routing",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

# Add middleware (order matters - last added is executed first)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    RateLimitMiddleware,
    max_requests=settings.rate_limit_requests,
    window_seconds=settings.rate_limit_window_seconds
)
app.add_middleware(TracingContextMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Call-ID", "X-Platform-Detected", "X-Detection-Method", "X-Detection-Confidence"]
)

add_exception_handlers(app)

app.include_router(passes_router)
app.include_router(platforms_router)


@app.get("/healthz", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.utcnow(),
        version=SERVICE_VERSION
    )


@app.get("/metrics")
async def metrics_endpoint():
    """Application metrics endpoint."""
    return {
        "timestamp": datetime.utcnow().isoformat(),
        "metrics": get_metrics()
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "walletpass.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False
    )
