"""Login: credentials in, session tokens out"""
import asyncio
import logging

from sqlalchemy.orm import Session

from app.cache.redis_cache import RedisCache
from app.errors.exceptions import ForbiddenException, UnauthorizedException
from app.models.user import User
from app.schemas.auth_schemas import LoginRequest
from app.services.password_service import verify_password
from app.services.registration_service import pending_email_key
from app.services.token_service import create_access_token, create_refresh_token
from app.services.user_service import get_user_by_email, update_user
from app.utils.logger import log_auth_event

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
EMAIL_NOT_VERIFIED = "Email not verified. Please check your email for the verification link."


async def authenticate_user(db: Session, cache: RedisCache, data: LoginRequest) -> tuple[str, str, User]:
    """
    Check credentials and open a session.

    Returns ``(access_token, refresh_token, user)``; the refresh token is
    also stored on the user row. Unknown email and wrong password share
    one UnauthorizedException so accounts cannot be enumerated. The one
    exception is an email still waiting for verification, which gets
    ForbiddenException.
    """
    email = str(data.email)
    user = await asyncio.to_thread(get_user_by_email, db, email, True)

    if user is None:
        if await cache.get(pending_email_key(email)):
            log_auth_event("LOGIN", email=email, error="email not verified")
            raise ForbiddenException(detail=EMAIL_NOT_VERIFIED)
        log_auth_event("LOGIN", email=email, error="unknown email")
        raise UnauthorizedException(detail=INVALID_CREDENTIALS)

    if not user.is_verified:
        log_auth_event("LOGIN", email=email, user_id=user.id, error="email not verified")
        raise ForbiddenException(detail=EMAIL_NOT_VERIFIED)

    if not await asyncio.to_thread(verify_password, data.password, user.hashed_password):
        log_auth_event("LOGIN", email=email, user_id=user.id, error="wrong password")
        raise UnauthorizedException(detail=INVALID_CREDENTIALS)

    access_token = create_access_token(user.id)
    refresh_token = create_refresh_token(user.id)
    user = await asyncio.to_thread(update_user, db, user, {"refresh_token": refresh_token})

    log_auth_event("LOGIN ok", email=email, user_id=user.id)
    return access_token, refresh_token, user
