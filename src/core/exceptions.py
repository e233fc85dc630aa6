"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"

    # Not found errors (404)
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Conflict errors (409)
    DUPLICATE_TEMPLATE = "DUPLICATE_TEMPLATE"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (500)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class AuthorizationError(AppException):
    """Authorization failed."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
        )


class ValidationError(AppException):
    """A required field is missing or malformed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.VALIDATION_ERROR,
            message=message,
            status_code=400,
            details={"field": field} if field else None,
        )


class TemplateNotFoundError(AppException):
    """Notification template not found."""

    def __init__(self, template_id: int) -> None:
        super().__init__(
            error_code=ErrorCode.TEMPLATE_NOT_FOUND,
            message=f"Template not found: {template_id}",
            status_code=404,
            details={"template_id": template_id},
        )


class DuplicateTemplateError(AppException):
    """A template with the same name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(
            error_code=ErrorCode.DUPLICATE_TEMPLATE,
            message=f"Template name already exists: {name}",
            status_code=409,
            details={"name": name},
        )


class PersistenceError(AppException):
    """Writing a notification to the database failed.

    Carries the event context so a lost notification can be traced.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.DATABASE_ERROR,
            message=message,
            status_code=500,
            details=context,
        )
