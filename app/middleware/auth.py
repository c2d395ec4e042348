"""Authentication dependencies"""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional

from app.core.dependencies import get_db
from app.errors.exceptions import (
    ForbiddenException,
    InvalidTokenError,
    NotFoundException,
    TokenExpiredError,
    TokenExpiredException,
    UnauthorizedException,
)
from app.models.user import User
from app.services.token_service import decode_access_token
from app.services.user_service import get_user_by_id

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Get current authenticated user from the bearer access token"""
    if not credentials or not credentials.credentials:
        raise UnauthorizedException(detail="Access denied. No token provided")

    try:
        user_id = decode_access_token(credentials.credentials)
    except TokenExpiredError:
        raise TokenExpiredException(detail="Access token has expired")
    except InvalidTokenError:
        raise UnauthorizedException(detail="Invalid token")

    user = get_user_by_id(db, user_id)
    if user is None:
        raise NotFoundException(detail="User not found")
    return user


def get_current_verified_user(current_user: User = Depends(get_current_user)) -> User:
    """Current user, provided their email has been verified"""
    if not current_user.is_verified:
        raise ForbiddenException(
            detail="Account not verified. Please check your email for verification link."
        )
    return current_user
