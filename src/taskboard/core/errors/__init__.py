"""Error handling module with RFC 7807 Problem Details."""

from taskboard.core.errors.exceptions import (
    AppException,
    AuthFailedError,
    BadRequestError,
    ConflictError,
    DuplicateTokenError,
    ForbiddenError,
    InvalidRefreshError,
    InvalidTokenError,
    MissingTokenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from taskboard.core.errors.handlers import (
    FieldError,
    ProblemDetail,
    register_exception_handlers,
)


__all__ = [
    # Exceptions
    "AppException",
    "AuthFailedError",
    "BadRequestError",
    "ConflictError",
    "DuplicateTokenError",
    # Handlers
    "FieldError",
    "ForbiddenError",
    "InvalidRefreshError",
    "InvalidTokenError",
    "MissingTokenError",
    "NotFoundError",
    "ProblemDetail",
    "UnauthorizedError",
    "ValidationError",
    "register_exception_handlers",
]
