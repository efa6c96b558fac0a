"""
Common library for reusable infrastructure components.

- database: Async MongoDB connection with Motor
- auth: Bearer token authentication (JWT)
- utils: Standard responses and exceptions
- config: Base settings class
"""

from common.database import MongoDB
from common.auth import AuthProvider, JWTAuth, create_auth_dependency
from common.utils import (
    success_response,
    error_response,
    APIException,
    UnauthorizedException,
    NotFoundException,
    ValidationException,
    StorageError,
    SchedulingError,
    InvariantViolation,
)
from common.config import BaseAppSettings

__all__ = [
    # Database
    "MongoDB",
    # Auth
    "AuthProvider",
    "JWTAuth",
    "create_auth_dependency",
    # Utils
    "success_response",
    "error_response",
    "APIException",
    "UnauthorizedException",
    "NotFoundException",
    "ValidationException",
    "StorageError",
    "SchedulingError",
    "InvariantViolation",
    # Config
    "BaseAppSettings",
]
