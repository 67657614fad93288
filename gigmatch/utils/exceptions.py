"""
Exception hierarchy for the GigMatch service.

Each class carries the HTTP status it surfaces as; the middleware turns any
escaped instance into a JSON error body through ``map_to_http_exception``.
Embedding provider failures are not part of this hierarchy: the provider client
reports them as ``EmbeddingResult`` error kinds.
"""
from typing import Any, Dict

from fastapi import HTTPException


def _collect(details: Dict[str, Any], **fields) -> Dict[str, Any]:
    details = dict(details or {})
    for key, value in fields.items():
        if value is not None and value != "":
            details[key] = value if isinstance(value, (int, float, bool)) else str(value)
    return details


class GigMatchBaseException(Exception):
    """Base exception for the GigMatch service"""

    error_code = "GIGMATCH_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details or {}
        self.cause = cause
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "error_type": type(self).__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result


class ValidationError(GigMatchBaseException):
    """Request or record data failed validation"""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = _collect(kwargs.pop('details', None), field=field, invalid_value=value)
        super().__init__(message, details=details, **kwargs)


class NotFoundError(GigMatchBaseException):
    """A worker or posting record does not exist (or is not visible to the caller)"""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str, resource: str = None, resource_id: Any = None, **kwargs):
        details = _collect(kwargs.pop('details', None), resource=resource, resource_id=resource_id)
        super().__init__(message, details=details, **kwargs)


class DatabaseError(GigMatchBaseException):
    """The record store could not be read or written"""

    error_code = "DATABASE_ERROR"
    status_code = 500

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = _collect(kwargs.pop('details', None), operation=operation, collection=collection)
        super().__init__(message, details=details, **kwargs)


class ConfigurationError(GigMatchBaseException):
    """A setting is missing or unusable"""

    error_code = "CONFIGURATION_ERROR"
    status_code = 400

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = _collect(kwargs.pop('details', None), config_key=config_key, config_value=config_value)
        super().__init__(message, details=details, **kwargs)


class RateLimitError(GigMatchBaseException):
    """The embedding provider refused work because of rate limiting"""

    error_code = "RATE_LIMIT_ERROR"
    status_code = 429

    def __init__(self, message: str, retry_after: float = None, **kwargs):
        details = _collect(kwargs.pop('details', None), retry_after=retry_after)
        super().__init__(message, details=details, **kwargs)


class ExternalServiceError(GigMatchBaseException):
    """An upstream service failed in a way the caller should see"""

    error_code = "EXTERNAL_SERVICE_ERROR"
    status_code = 502

    def __init__(self, message: str, service_name: str = None, **kwargs):
        details = _collect(kwargs.pop('details', None), service_name=service_name)
        super().__init__(message, details=details, **kwargs)


def map_to_http_exception(exc: GigMatchBaseException) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={"error": exc.to_dict(), "message": exc.message},
    )


class ExceptionContext:
    """Wraps a record store call so driver errors leave it as GigMatch exceptions.

    Malformed documents (KeyError/ValueError/TypeError while parsing) become
    ``ValidationError``; anything else raised by the driver becomes
    ``DatabaseError``. GigMatch exceptions pass through untouched.
    """

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None or isinstance(exc_val, GigMatchBaseException):
            return False

        if self.logger:
            self.logger.error(
                f"{self.operation} failed: {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        if isinstance(exc_val, (KeyError, ValueError, TypeError)):
            raise ValidationError(
                f"Malformed record in {self.operation}: {exc_val}",
                details=self.context,
                cause=exc_val
            ) from exc_val

        raise DatabaseError(
            f"Record store error in {self.operation}: {exc_val}",
            operation=self.operation,
            details=self.context,
            cause=exc_val
        ) from exc_val
