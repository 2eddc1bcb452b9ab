"""Middleware and exception handlers for the Intake-Hub API.

Domain exceptions are translated to JSON responses here so that routes only
deal with the happy path.
"""

import logging
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from intake_hub.domain.ports import (
    InvalidQueryError,
    StorageError,
    StoreUnavailableError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log the request and add an X-Process-Time header to the response."""
        start_time = time.time()
        client = request.client.host if request.client else "unknown"
        logger.info(f"{request.method} {request.url.path} - Client: {client}")

        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.3f}"
        logger.info(
            f"{request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Time: {process_time:.3f}s"
        )
        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Last-resort handler: anything unexpected becomes an opaque 500."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            logger.error(f"Unexpected error on {request.method} {request.url.path}: {str(e)}", exc_info=True)
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "detail": "An unexpected error occurred. Please check logs for details.",
                },
            )


async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    logger.warning(f"Rejected patient record, missing fields: {exc.missing_fields}")
    return JSONResponse(
        status_code=400,
        content={"error": str(exc), "missing_fields": exc.missing_fields},
    )


async def invalid_query_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning(f"Malformed request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    # Full detail was already written to the error log by IntakeService
    if isinstance(exc, StoreUnavailableError):
        error = "Patient store unavailable"
    elif exc.operation == "create":
        error = "Failed to save patient data"
    else:
        error = "Failed to read patient data"
    return JSONResponse(status_code=500, content={"error": error, "details": exc.to_details()})


def setup_middleware(app: FastAPI) -> None:
    """Register exception handlers and middleware.

    Middleware Order (important):
        1. ErrorHandlingMiddleware - catches anything the handlers did not
        2. LoggingMiddleware - logs requests/responses
    """
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(InvalidQueryError, invalid_query_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StorageError, storage_error_handler)

    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(LoggingMiddleware)
