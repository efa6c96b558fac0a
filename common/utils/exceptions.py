"""
Custom HTTP exceptions with error codes.

Extends FastAPI's HTTPException with standardized error codes
for consistent API error responses.

Example:
    from common.utils import NotFoundException

    @app.get("/badges/{badge_id}")
    async def get_badge(badge_id: str):
        definition = catalog.by_id(badge_id)
        if not definition:
            raise NotFoundException("Badge not found", code="BADGE_NOT_FOUND")
        return definition
"""

from typing import Optional, Any, Dict
from fastapi import HTTPException


class APIException(HTTPException):
    """
    Base API exception with error code support.

    Provides consistent error response format across the API.
    """

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        """
        Create an API exception.

        Args:
            status_code: HTTP status code
            message: Human-readable error message
            code: Machine-readable error code
            details: Additional error details
            headers: Optional response headers
        """
        detail: Dict[str, Any] = {"message": message}

        if code:
            detail["code"] = code

        if details is not None:
            detail["details"] = details

        self.message = message
        self.code = code

        super().__init__(
            status_code=status_code,
            detail=detail,
            headers=headers,
        )

    def __str__(self) -> str:
        return f"{self.code or self.status_code}: {self.message}"


class UnauthorizedException(APIException):
    """401 Unauthorized - Missing or invalid authentication."""

    def __init__(
        self,
        message: str = "Unauthorized",
        code: str = "UNAUTHORIZED",
        details: Optional[Any] = None,
    ):
        super().__init__(401, message, code, details)


class NotFoundException(APIException):
    """404 Not Found - Resource doesn't exist."""

    def __init__(
        self,
        message: str = "Not found",
        code: str = "NOT_FOUND",
        details: Optional[Any] = None,
    ):
        super().__init__(404, message, code, details)


class ValidationException(APIException):
    """422 Validation Error - Request validation failed."""

    def __init__(
        self,
        message: str = "Validation error",
        code: str = "VALIDATION_ERROR",
        details: Optional[Any] = None,
    ):
        super().__init__(422, message, code, details)


class InternalServerException(APIException):
    """500 Internal Server Error - Unexpected server error."""

    def __init__(
        self,
        message: str = "Internal server error",
        code: str = "INTERNAL_ERROR",
        details: Optional[Any] = None,
    ):
        super().__init__(500, message, code, details)


class ServiceUnavailableException(APIException):
    """503 Service Unavailable - Service temporarily unavailable."""

    def __init__(
        self,
        message: str = "Service unavailable",
        code: str = "SERVICE_UNAVAILABLE",
        retry_after: Optional[int] = None,
    ):
        headers = {}
        if retry_after:
            headers["Retry-After"] = str(retry_after)

        super().__init__(
            status_code=503,
            message=message,
            code=code,
            details={"retryAfter": retry_after} if retry_after else None,
            headers=headers if headers else None,
        )


# ─────────────────────────────────────────────────────────────────
# Domain errors
# ─────────────────────────────────────────────────────────────────

class StorageError(ServiceUnavailableException):
    """Read or write failure against the data store."""

    def __init__(self, message: str = "Storage unavailable", code: str = "STORAGE_ERROR"):
        super().__init__(message=message, code=code)


class SchedulingError(ServiceUnavailableException):
    """Notification permission denied or scheduler failure."""

    def __init__(self, message: str = "Scheduling failed", code: str = "SCHEDULING_ERROR"):
        super().__init__(message=message, code=code)


class InvariantViolation(InternalServerException):
    """
    A progression invariant was broken.

    Raised for badge id collisions in the catalog, unknown requirement
    kinds, or an earned badge whose requirement no longer holds. Always
    a programming error.
    """

    def __init__(self, message: str, code: str = "INVARIANT_VIOLATION"):
        super().__init__(message=message, code=code)
