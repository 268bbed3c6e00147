"""
Exception handlers translating service errors into JSON error responses.
"""

from datetime import datetime
from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from walletpass.exceptions import WalletPassError
from walletpass.models.api_models import ErrorResponse

logger = structlog.get_logger()


def get_correlation_id(request: Request) -> str:
    """Correlation ID assigned by the logging middleware, else the raw header."""
    correlation_id = getattr(request.state, "correlation_id", None)
    return correlation_id or request.headers.get("X-Call-ID", "unknown")


def create_error_response(
    error_type: str,
    message: str,
    correlation_id: str,
    status_code: int = 500,
    details: Optional[Any] = None
) -> JSONResponse:
    """Create standardized error response."""
    error_response = ErrorResponse(
        error=error_type,
        message=message,
        correlation_id=correlation_id,
        timestamp=datetime.utcnow(),
        details=details
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json"),
        headers={"X-Call-ID": correlation_id}
    )


def add_exception_handlers(app: FastAPI) -> None:
    """
    Registers exception handlers with the FastAPI app.
    """
    @app.exception_handler(WalletPassError)
    async def wallet_pass_exception_handler(request: Request, exc: WalletPassError):
        correlation_id = get_correlation_id(request)
        logger.warning(
            "Request rejected",
            path=request.url.path,
            error=exc.kind.value,
            error_message=exc.message,
            status_code=exc.status_code,
            correlation_id=correlation_id
        )
        return create_error_response(
            error_type=exc.kind.value,
            message=exc.message,
            correlation_id=correlation_id,
            status_code=exc.status_code,
            details=exc.details
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """
        Catch-all for unhandled exceptions. Internal detail is logged, never returned.
        """
        correlation_id = get_correlation_id(request)
        logger.error(
            "Unhandled exception",
            method=request.method,
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            correlation_id=correlation_id,
            exc_info=True
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            correlation_id=correlation_id,
            status_code=500
        )
