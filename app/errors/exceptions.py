"""Custom exceptions for error handling"""
from fastapi import HTTPException, status


class BaseHTTPException(HTTPException):
    """Base exception class for all custom HTTP exceptions"""
    def __init__(self, detail: str = None, headers: dict = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.detail,
            headers=headers
        )


class BadRequestException(BaseHTTPException):
    """400 Bad Request"""
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Bad request"


class ValidationException(BadRequestException):
    """400 Missing or malformed input"""
    detail = "Validation error"


class UnauthorizedException(BaseHTTPException):
    """401 Unauthorized"""
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid credentials"

    def __init__(self, detail: str = None):
        super().__init__(
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"}
        )


class TokenExpiredException(UnauthorizedException):
    """401 Token past its expiry"""
    detail = "Token has expired"


class ForbiddenException(BaseHTTPException):
    """403 Forbidden"""
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden"


class NotFoundException(BaseHTTPException):
    """404 Not Found"""
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"


class ConflictException(BaseHTTPException):
    """409 Conflict"""
    status_code = status.HTTP_409_CONFLICT
    detail = "Resource already exists"


class InternalServerException(BaseHTTPException):
    """500 Internal Server Error"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Internal server error"


class DatabaseException(InternalServerException):
    """Database operation failed"""
    detail = "Database operation failed"


# ── collaborator errors (never reach the client as-is) ───────────────────────

class TokenError(Exception):
    """Base class for token validation failures"""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its expiry"""


class InvalidTokenError(TokenError):
    """Bad signature, malformed token or wrong token type"""


class EmailDeliveryError(Exception):
    """The notification sink could not deliver a message"""


class CacheUnavailableError(Exception):
    """The transient store is unreachable or a command failed"""
