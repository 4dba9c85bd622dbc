"""Request tagging, error translation and timing middleware."""

import time
import uuid
from datetime import datetime, timezone
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from .exceptions import (
    VisualizerError, LayoutError, DocumentFormatError,
    ExampleNotFoundError, APIError, create_error_response
)
from .logging import get_logger, set_logging_context, clear_logging_context


logger = get_logger(__name__)

# Checked in order; the first matching class decides the status.
_ERROR_STATUS = (
    (ExampleNotFoundError, 404),
    (DocumentFormatError, 422),
    (LayoutError, 400),
)


def status_code_for_error(error: VisualizerError) -> int:
    """Map a visualizer error onto an HTTP status code."""
    if isinstance(error, APIError):
        return error.status_code
    for error_type, status_code in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status_code
    return 500


def _internal_error(error: Exception, request_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": "InternalServerError",
            "message": "An unexpected error occurred",
            "details": {
                "error_type": type(error).__name__,
                "timestamp": datetime.now(timezone.utc).isoformat()
            },
            "request_id": request_id
        },
        headers={"X-Request-ID": request_id}
    )


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id and turns escaped errors into JSON bodies."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = uuid.uuid4().hex
        started = time.perf_counter()
        route = f"{request.method} {request.url.path}"

        set_logging_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown"
        )
        logger.debug(f"Request started: {route}")

        try:
            response = await call_next(request)
        except VisualizerError as e:
            logger.warning(
                f"{e.error_code} on {route} after {time.perf_counter() - started:.3f}s",
                extra={"extra_fields": {"error_details": e.to_dict()}}
            )
            response = JSONResponse(status_code=status_code_for_error(e), content=create_error_response(e))
        except Exception as e:
            logger.error(f"Unhandled {type(e).__name__} on {route}: {e}", exc_info=True)
            response = _internal_error(e, request_id)
        else:
            logger.info(f"{route} -> {response.status_code} in {time.perf_counter() - started:.3f}s")
        finally:
            clear_logging_context()

        response.headers["X-Request-ID"] = request_id
        return response


class PerformanceMonitoringMiddleware(BaseHTTPMiddleware):
    """Reports response time and flags requests slower than a threshold."""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        if elapsed > self.slow_request_threshold:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {elapsed:.3f}s "
                f"(threshold {self.slow_request_threshold}s)"
            )

        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"
        return response
