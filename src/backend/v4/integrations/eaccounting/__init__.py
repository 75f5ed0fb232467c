"""eAccounting REST client (network + OAuth live here; HTTP endpoints live in v4/api)."""

from .config import EAccountingSettings
from .errors import (
    ApiError,
    AuthError,
    ConfigurationError,
    NetworkError,
    NotFound,
    RateLimited,
    UnknownServerError,
    ValidationError,
)
from .models import AccessCredential, PaginatedResult, PaginationRequest
from .oauth import DEFAULT_SCOPE, TokenManager, build_authorization_url
from .sdk import EAccounting
from .transport import Transport

__all__ = [
    "EAccounting",
    "EAccountingSettings",
    "TokenManager",
    "Transport",
    "build_authorization_url",
    "DEFAULT_SCOPE",
    "AccessCredential",
    "PaginationRequest",
    "PaginatedResult",
    "ApiError",
    "AuthError",
    "ConfigurationError",
    "NetworkError",
    "NotFound",
    "RateLimited",
    "UnknownServerError",
    "ValidationError",
]
