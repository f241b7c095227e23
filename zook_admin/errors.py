"""
API error taxonomy – each error maps 1:1 to an HTTP status in the envelope.
"""

from typing import Any, Optional


class ApiError(Exception):
    status = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, errors: Any = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationError(ApiError):
    status = 400
    default_message = "Validation failed"


class UnauthorizedError(ApiError):
    status = 401
    default_message = "Authentication required"


class ForbiddenError(ApiError):
    status = 403
    default_message = "Access denied"

    WRONG_COUNTRY = "wrong_country"
    WRONG_CITY = "wrong_city"
    ROLE = "role"

    def __init__(self, message: Optional[str] = None, kind: str = ROLE):
        super().__init__(message)
        self.kind = kind


class NotFoundError(ApiError):
    status = 404
    default_message = "Resource not found"


class ConflictError(ApiError):
    status = 409
    default_message = "Resource already exists"


class InternalError(ApiError):
    status = 500
