"""
Application Errors
Error kinds raised by services and mapped to HTTP responses in app.main.
"""

from typing import Dict, Optional


class AppError(Exception):
    """Base class for errors that carry a client-safe message."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationError(AppError):
    """Malformed or missing input."""
    status_code = 400
    default_detail = "Invalid request"


class AuthenticationError(AppError):
    """Bad credentials, code, token or API key."""
    status_code = 401
    default_detail = "Invalid credentials"

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class AuthorizationError(AppError):
    status_code = 403
    default_detail = "Unauthorized"


class NotFoundError(AppError):
    status_code = 404
    default_detail = "Not found"


class ConflictError(AppError):
    """Duplicate value for a unique field. Reported as 400 to match the public API."""
    status_code = 400
    default_detail = "Resource already exists"


class InternalError(AppError):
    status_code = 500
    default_detail = "Internal server error"


# Token verification

class TokenExpiredError(AuthenticationError):
    default_detail = "Session expired"


class TokenInvalidError(AuthenticationError):
    default_detail = "Access denied"


# API key authentication

class ApiKeyNotFoundError(AuthenticationError):
    default_detail = "Invalid API key"


class ApiKeyExpiredError(AuthenticationError):
    default_detail = "API key expired"


class ApiKeyRevokedError(AuthenticationError):
    default_detail = "API key revoked"
