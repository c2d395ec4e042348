"""Error handling module"""
from app.errors.exceptions import (
    BadRequestException,
    ValidationException,
    UnauthorizedException,
    TokenExpiredException,
    ForbiddenException,
    NotFoundException,
    ConflictException,
    InternalServerException,
    DatabaseException,
    TokenError,
    TokenExpiredError,
    InvalidTokenError,
    EmailDeliveryError,
    CacheUnavailableError,
)

__all__ = [
    "BadRequestException",
    "ValidationException",
    "UnauthorizedException",
    "TokenExpiredException",
    "ForbiddenException",
    "NotFoundException",
    "ConflictException",
    "InternalServerException",
    "DatabaseException",
    "TokenError",
    "TokenExpiredError",
    "InvalidTokenError",
    "EmailDeliveryError",
    "CacheUnavailableError",
]
