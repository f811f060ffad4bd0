"""
Portal Backend - Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions, each tied to a semantic ErrorCode.
How:   Each exception carries a user-safe message, an optional details dict
       (returned to the client) and an optional context dict (logged only).
       Global exception handlers in main.py turn them into OperationError
       envelopes and pick the HTTP status with status_for_code().
Who:   Raised by services, dependencies and route handlers.

Exception Hierarchy:
    PortalError (base)                    INTERNAL_SERVER_ERROR  500
    ├── BadRequestError                   BAD_REQUEST            400
    ├── ValidationError                   VALIDATION_ERROR       400
    ├── UnauthorizedError                 UNAUTHORIZED           401
    ├── ForbiddenError                    FORBIDDEN              403
    ├── NotFoundError                     NOT_FOUND              404
    ├── ConflictError                     CONFLICT               409
    ├── RateLimitExceededError            RATE_LIMIT_EXCEEDED    429
    ├── DatabaseError                     INTERNAL_SERVER_ERROR  500
    └── FileStorageError                  INTERNAL_SERVER_ERROR  500
"""

from typing import Any, Dict, Optional

from portal.operation_result import ErrorCode, OperationError, error


class PortalError(Exception):
    """
    Base exception for all portal application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        details:  Structured data returned alongside the error (field names, limits)
        context:  Additional debug info (logged but NOT returned to client)
    """

    code: ErrorCode = ErrorCode.INTERNAL_SERVER_ERROR
    default_message = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message or self.default_message
        self.details = details
        self.context = context or {}
        super().__init__(self.message)

    def to_result(self) -> OperationError:
        return error(self.message, self.code, self.details)


class BadRequestError(PortalError):
    code = ErrorCode.BAD_REQUEST
    default_message = "Bad request"


class ValidationError(PortalError):
    """
    Raised when client input fails a business rule.

    Schema-level problems are caught earlier by FastAPI's RequestValidationError
    handler; this covers rules such as the password policy or bucket limits.
    """

    code = ErrorCode.VALIDATION_ERROR
    default_message = "Validation failed"

    def __init__(
        self,
        message: Optional[str] = None,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if field:
            details = {**(details or {}), "field": field}
        super().__init__(message=message, details=details, context=context)
        self.field = field


class UnauthorizedError(PortalError):
    code = ErrorCode.UNAUTHORIZED
    default_message = "Authentication required"


class ForbiddenError(PortalError):
    code = ErrorCode.FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(PortalError):
    """Raised when a requested resource does not exist."""

    code = ErrorCode.NOT_FOUND

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = {**(context or {}), "resource": resource}
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx)
        self.resource = resource


class ConflictError(PortalError):
    code = ErrorCode.CONFLICT
    default_message = "Resource already exists"


class RateLimitExceededError(PortalError):
    """Raised when a client exceeds a rate-limit scope."""

    code = ErrorCode.RATE_LIMIT_EXCEEDED
    default_message = "Rate limit exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        details: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(details=details, context=context)
        self.retry_after = retry_after


class DatabaseError(PortalError):
    """
    Raised when a database operation fails unexpectedly.

    The client always gets the generic message; the SQL error goes to the log.
    """

    default_message = "A database error occurred. Please try again later."


class FileStorageError(PortalError):
    """Raised when reading, writing or deleting a stored file fails."""

    default_message = "File storage operation failed"
