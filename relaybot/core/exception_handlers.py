"""Global exception handlers for the HTTP surface.

Bot-side failures are handled inside the dispatcher; these handlers cover
errors raised while the webhook/health routes themselves run.

- AdmissionAppError -> 403, ValidationAppError -> 400
- TransportAppError / ContentProviderError -> 502 (upstream fault)
- any other AppError -> 500
- unexpected Exception -> generic 500 with no internals leaked
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from relaybot.core.errors import (
    INTERNAL_ERROR,
    AdmissionAppError,
    AppError,
    ContentProviderError,
    TransportAppError,
    ValidationAppError,
)
from relaybot.core.logging import get_correlation_id

logger = logging.getLogger(__name__)


def status_for(exc: AppError) -> int:
    if isinstance(exc, AdmissionAppError):
        return 403
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, (TransportAppError, ContentProviderError)):
        return 502
    return 500


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render a domain error as ``{"error": {code, message, request_id, details?}}``."""
    status_code = status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_correlation_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(status_code=status_code, content={"error": error_content})


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for unexpected errors; details go to the log only."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": INTERNAL_ERROR,
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_correlation_id(),
            }
        },
    )


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with the FastAPI app."""
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
