"""
Middleware and exception handlers for the statquery FastAPI application.

This module contains:
- HTTP middleware for request/response processing
- Centralized exception handlers for all custom exceptions
- Logging and tracing

Exception Handling Strategy:
- All NL2SQLException subclasses are caught and converted to JSON responses
- Each exception type carries its own HTTP status code
- Responses include trace_id for debugging
- ExhaustedRetryError surfaces the last database error verbatim as the message

Usage in main.py:
    from .api.middleware import register_exception_handlers
    register_exception_handlers(app)
"""

from datetime import datetime, timezone
from typing import Callable, Dict

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ..utils.logging import get_module_logger
from ..utils.tracing import generate_trace_id, trace_scope, current_trace_id
from ..domain.responses import ErrorResponse
from ..domain.errors import NL2SQLException

# Initialize logger for this module
logger = get_module_logger()


# =============================================================================
# Middleware Functions
# =============================================================================


async def trace_id_middleware(request: Request, call_next: Callable) -> Response:
    """
    Middleware to generate and manage trace IDs for each request.

    - Extracts trace_id from X-Trace-ID header if provided
    - Generates a new UUID trace_id if not provided
    - Sets trace_id in context for the entire request lifecycle
    - Adds trace_id to response headers
    """
    trace_id = request.headers.get("X-Trace-ID") or generate_trace_id()

    with trace_scope(trace_id):
        response = await call_next(request)

    response.headers["X-Trace-ID"] = trace_id

    return response


async def logging_middleware(request: Request, call_next: Callable) -> Response:
    """
    Middleware to log HTTP requests and responses.

    Logs:
    - Request: method, URL, client IP
    - Response: status code, duration in milliseconds
    - Adds X-Process-Time header with duration
    """
    start_time = datetime.now(timezone.utc)
    trace_id = current_trace_id()

    logger.info(
        "HTTP request started",
        method=request.method,
        url=str(request.url),
        client_ip=request.client.host if request.client else None,
        trace_id=trace_id
    )

    response = await call_next(request)

    duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

    response.headers["X-Process-Time"] = str(round(duration_ms, 2))

    logger.info(
        "HTTP request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code,
        duration_ms=round(duration_ms, 2),
        trace_id=trace_id
    )

    return response


# =============================================================================
# Exception Handlers
# =============================================================================


def _create_error_response(
    status_code: int,
    error_code: str,
    message: str,
    details: Dict | None = None
) -> JSONResponse:
    """
    Create a standardized JSON error response.

    All error responses follow this structure:
    {
        "error": "error_code",
        "message": "Human readable message",
        "details": {...},  // Optional additional context
        "trace_id": "uuid",
        "timestamp": "ISO8601"
    }
    """
    error_response = ErrorResponse(
        error=error_code.lower(),
        message=message,
        details=details,
        trace_id=current_trace_id(),
        timestamp=datetime.now(timezone.utc)
    )

    # mode="json" serializes datetime to ISO strings
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True)
    )


async def nl2sql_exception_handler(request: Request, exc: NL2SQLException) -> JSONResponse:
    """
    Handler for all NL2SQLException subclasses.

    Maps exception attributes to HTTP response:
    - exc.http_status -> HTTP status code
    - exc.error_code -> error field in response
    - exc.message -> message field in response
    - exc.details -> details field in response
    """
    log_level = "warning" if exc.http_status < 500 else "error"
    getattr(logger, log_level)(
        f"{exc.__class__.__name__}: {exc.message}",
        error_code=exc.error_code,
        http_status=exc.http_status,
        details=exc.details,
        url=str(request.url),
        method=request.method,
        trace_id=current_trace_id()
    )

    return _create_error_response(
        status_code=exc.http_status,
        error_code=exc.error_code,
        message=exc.message,
        details=exc.details if exc.details else None
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handler for FastAPI/Pydantic validation errors.

    HTTP 422 with field-level error information.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Request validation failed",
        error_count=len(errors),
        errors=errors,
        url=str(request.url),
        method=request.method,
        trace_id=current_trace_id()
    )

    return _create_error_response(
        status_code=422,
        error_code="VALIDATION_ERROR",
        message="Request validation failed",
        details={"errors": errors}
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handler for Starlette/FastAPI HTTP exceptions."""
    error_code_map = {
        400: "BAD_REQUEST",
        404: "NOT_FOUND",
        405: "METHOD_NOT_ALLOWED",
        500: "INTERNAL_ERROR",
        503: "SERVICE_UNAVAILABLE",
    }

    error_code = error_code_map.get(exc.status_code, "HTTP_ERROR")

    log_level = "warning" if exc.status_code < 500 else "error"
    getattr(logger, log_level)(
        f"HTTP {exc.status_code}: {exc.detail}",
        error_code=error_code,
        http_status=exc.status_code,
        url=str(request.url),
        method=request.method,
        trace_id=current_trace_id()
    )

    return _create_error_response(
        status_code=exc.status_code,
        error_code=error_code,
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code} error"
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global fallback handler for unhandled exceptions.

    - Logs full error details for debugging
    - Returns generic 500 error to client (no internal details exposed)
    """
    logger.error(
        "Unhandled exception occurred",
        error=str(exc),
        error_type=type(exc).__name__,
        url=str(request.url),
        method=request.method,
        trace_id=current_trace_id(),
        exc_info=True
    )

    return _create_error_response(
        status_code=500,
        error_code="INTERNAL_ERROR",
        message="An internal server error occurred. Please try again later."
    )


# =============================================================================
# Exception Handler Registration
# =============================================================================


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with the FastAPI application.

    Exception handling priority (most specific class wins):
    1. NL2SQLException and subclasses
    2. RequestValidationError (Pydantic)
    3. StarletteHTTPException (FastAPI/Starlette)
    4. General Exception (fallback)
    """
    # FastAPI's add_exception_handler typing rejects subclass-specific handlers
    app.add_exception_handler(NL2SQLException, nl2sql_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)  # type: ignore[arg-type]

    logger.info(
        "Exception handlers registered",
        handlers=[
            "NL2SQLException",
            "RequestValidationError",
            "StarletteHTTPException",
            "Exception (fallback)"
        ]
    )


# =============================================================================
# OpenAPI Error Response Models (for documentation)
# =============================================================================

# Example usage in routes:
#   @app.post("/endpoint", responses=ERROR_RESPONSES)

_EXAMPLE_TRACE_ID = "550e8400-e29b-41d4-a716-446655440000"
_EXAMPLE_TIMESTAMP = "2026-01-15T10:30:00Z"

ERROR_RESPONSES = {
    422: {
        "description": "Validation Error - Empty query or malformed request",
        "content": {
            "application/json": {
                "example": {
                    "error": "empty_query",
                    "message": "Query cannot be empty",
                    "details": {"field": "query"},
                    "trace_id": _EXAMPLE_TRACE_ID,
                    "timestamp": _EXAMPLE_TIMESTAMP
                }
            }
        }
    },
    500: {
        "description": "Every SQL attempt failed; message is the last database error",
        "content": {
            "application/json": {
                "example": {
                    "error": "exhausted_retries",
                    "message": 'Column does not exist: column "wins" does not exist',
                    "details": {"attempts": 3},
                    "trace_id": _EXAMPLE_TRACE_ID,
                    "timestamp": _EXAMPLE_TIMESTAMP
                }
            }
        }
    },
    503: {
        "description": "Service Unavailable - LLM or database not reachable",
        "content": {
            "application/json": {
                "example": {
                    "error": "llm_error",
                    "message": "LLM generation failed: Connection error.",
                    "trace_id": _EXAMPLE_TRACE_ID,
                    "timestamp": _EXAMPLE_TIMESTAMP
                }
            }
        }
    }
}
