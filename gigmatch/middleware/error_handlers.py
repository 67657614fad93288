"""
Request middleware for the GigMatch API: error bodies, request logging and
slow-request detection.

Every response, including errors, carries an ``X-Request-ID`` header.
"""
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from gigmatch.utils.exceptions import GigMatchBaseException, map_to_http_exception
from gigmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def _request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id is None:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        request.state.request_id = request_id
    return request_id


def _context(request: Request, **extra) -> Dict[str, Any]:
    return {
        "request_id": _request_id(request),
        "method": request.method,
        "path": request.url.path,
        **extra,
    }


def error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    if not isinstance(detail, dict):
        detail = {"message": str(detail)}
    body = {
        "success": False,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail,
    }
    return JSONResponse(status_code=status_code, content=body, headers={REQUEST_ID_HEADER: request_id})


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turns anything raised below it into a JSON error body"""

    async def dispatch(self, request: Request, call_next):
        request_id = _request_id(request)
        try:
            response = await call_next(request)
        except GigMatchBaseException as exc:
            http_exc = map_to_http_exception(exc)
            log = logger.warning if http_exc.status_code < 500 else logger.error
            log(
                f"{exc.error_code} on {request.method} {request.url.path}: {exc.message}",
                extra=_context(request, error_code=exc.error_code, details=exc.details)
            )
            return error_response(request_id, http_exc.status_code, http_exc.detail)
        except RequestValidationError as exc:
            logger.warning(f"Invalid request to {request.url.path}", extra=_context(request))
            return error_response(request_id, 422, {
                "error": "Validation failed",
                "message": "Request data validation failed",
                "validation_errors": exc.errors(),
            })
        except ValidationError as exc:
            # a stored record that no longer fits the model
            logger.error(f"Record validation failed on {request.url.path}: {exc}", extra=_context(request))
            return error_response(request_id, 400, {
                "error": "Data validation failed",
                "message": "Invalid data format or values",
                "validation_errors": exc.errors(include_url=False, include_context=False),
            })
        except HTTPException as exc:
            logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}", extra=_context(request))
            return error_response(request_id, exc.status_code, exc.detail)
        except Exception as exc:
            logger.error(
                f"Unhandled {type(exc).__name__} on {request.method} {request.url.path}: {exc}",
                extra=_context(request),
                exc_info=True
            )
            return error_response(request_id, 500, {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            })

        response.headers[REQUEST_ID_HEADER] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """One INFO line per request with status and duration"""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.error(
                f"{request.method} {request.url.path} raised after {time.perf_counter() - start:.3f}s",
                extra=_context(request)
            )
            raise
        elapsed = time.perf_counter() - start
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} in {elapsed:.3f}s",
            extra=_context(request, status_code=response.status_code, processing_time=elapsed)
        )
        return response


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Adds X-Processing-Time and warns on requests slower than the threshold"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start

        if elapsed > self.slow_request_threshold:
            # ranking requests can run up to the ranking budget
            logger.warning(
                f"Slow request: {request.method} {request.url.path} took {elapsed:.3f}s",
                extra=_context(request, processing_time=elapsed, threshold=self.slow_request_threshold)
            )

        response.headers["X-Processing-Time"] = f"{elapsed:.3f}"
        return response
