"""
Global exception handlers: translate domain errors into JSON responses and log them.
"""
import json

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from pos_edge.core.errors import PosError
from pos_edge.core.logger import logger


async def pos_error_handler(request: Request, exc: PosError):
    log_message = (
        f"[{type(exc).__name__} {exc.status_code}] {request.method} {request.url.path} - {exc.message}"
    )
    if exc.status_code >= 500:
        logger.error(log_message, exc_info=exc)
    else:
        logger.warning(log_message)

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for request validation errors (422); logs the per-field details.
    """
    error_details = []
    for error in exc.errors():
        error_details.append({
            "field": ".".join(str(loc) for loc in error.get("loc", [])),
            "type": error.get("type", "unknown"),
            "message": error.get("msg", "Validation error"),
        })

    logger.warning(
        f"[VALIDATION ERROR 422] {request.method} {request.url.path} - "
        f"{json.dumps(error_details, ensure_ascii=False)}"
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": error_details,
            "message": "Validation failed",
        },
    )


async def general_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"[UNHANDLED EXCEPTION] {request.method} {request.url.path} - {type(exc).__name__}: {exc}",
        exc_info=exc,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error_type": type(exc).__name__,
        },
    )
