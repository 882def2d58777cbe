"""
Utility modules for the marketplace web application.
"""

from .auth import (
    read_token_claims,
    is_token_expired,
    TokenPayload
)

from .exceptions import (
    APIException,
    ValidationError,
    NotFoundError,
    UnauthorizedError,
    ForbiddenError,
    ConflictError,
    BadRequestError,
    ServiceUnavailableError,
    InvalidCredentialsError,
    AgentNotApprovedError,
    LoginRequiredError,
    PropertyNotFoundError,
    FileUploadError
)

# Dependencies are imported directly where needed to avoid circular imports

__all__ = [
    # Auth utilities
    "read_token_claims",
    "is_token_expired",
    "TokenPayload",

    # Exceptions
    "APIException",
    "ValidationError",
    "NotFoundError",
    "UnauthorizedError",
    "ForbiddenError",
    "ConflictError",
    "BadRequestError",
    "ServiceUnavailableError",
    "InvalidCredentialsError",
    "AgentNotApprovedError",
    "LoginRequiredError",
    "PropertyNotFoundError",
    "FileUploadError",
]
