"""
Registration and email verification.

A registration never touches the users table. It is parked in the
transient store under two keys sharing one TTL:

    pending_registration:<token>  -> {username, email, password_hash, created_at}
    pending_email:<email>         -> {verification_token}

and only becomes a durable user when the emailed token comes back.

The duplicate check (users table + pending_email key) is two independent
reads followed by two writes, with no lock spanning them. Two concurrent
registrations for the same email can both pass it; the loser is then
rejected by the unique index on ``users.email`` when its link is used,
which verify_email reports as a conflict.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from passlib.exc import MissingBackendError
from sqlalchemy.orm import Session

from app.cache.redis_cache import RedisCache
from app.core.config import settings
from app.errors.exceptions import (
    ConflictException,
    EmailDeliveryError,
    InternalServerException,
    InvalidTokenError,
    NotFoundException,
    TokenExpiredError,
    TokenExpiredException,
    ValidationException,
)
from app.models.user import User
from app.schemas.auth_schemas import RegisterRequest
from app.services.password_service import get_password_hash
from app.services.token_service import create_verification_token, decode_verification_token
from app.services.user_service import create_user, get_user_by_email, get_user_by_username, update_profile
from app.utils.email import build_verification_link, send_verification_email
from app.utils.logger import log_auth_event

logger = logging.getLogger(__name__)

PENDING_TOKEN_PREFIX = "pending_registration:"
PENDING_EMAIL_PREFIX = "pending_email:"


def pending_token_key(token: str) -> str:
    return f"{PENDING_TOKEN_PREFIX}{token}"


def pending_email_key(email: str) -> str:
    return f"{PENDING_EMAIL_PREFIX}{email}"


def _find_existing(db: Session, email: str, username: str):
    return get_user_by_email(db, email), get_user_by_username(db, username)


async def _retire_pending(cache: RedisCache, token: str, email: str) -> None:
    """Delete both pending keys; one failing does not stop the other."""
    results = await asyncio.gather(
        cache.delete(pending_token_key(token)),
        cache.delete(pending_email_key(email)),
        return_exceptions=True,
    )
    for result in results:
        if isinstance(result, Exception):
            logger.warning(f"Could not remove pending registration key for {email}: {result}")


async def register_user(db: Session, cache: RedisCache, data: RegisterRequest) -> dict:
    """
    Park a new registration and email the verification link.

    Raises ConflictException if the email belongs to a user or to a live
    pending registration, or if the username is taken.
    """
    email = str(data.email)

    if not cache.is_available:
        logger.warning(f"[Register] Transient store unavailable; registration for {email} cannot be verified")

    (user_by_email, user_by_username), pending = await asyncio.gather(
        asyncio.to_thread(_find_existing, db, email, data.username),
        cache.get(pending_email_key(email)),
    )
    if user_by_email or pending:
        log_auth_event("REGISTER", email=email, error="email already in use")
        raise ConflictException(detail="Email already in use")
    if user_by_username:
        log_auth_event("REGISTER", email=email, error="username already taken")
        raise ConflictException(detail="Username already taken")

    try:
        password_hash = await asyncio.to_thread(get_password_hash, data.password)
    except (ValueError, TypeError, MissingBackendError) as e:
        logger.error(f"[Register] Password hashing failed for {email}: {type(e).__name__}")
        raise InternalServerException(detail="Failed to register user")

    token = create_verification_token(email, data.username)
    ttl = settings.PENDING_REGISTRATION_TTL_SECONDS
    await cache.set(
        pending_token_key(token),
        {
            "username": data.username,
            "email": email,
            "password_hash": password_hash,
            "created_at": datetime.now(timezone.utc).isoformat(),
        },
        ttl,
    )
    await cache.set(pending_email_key(email), {"verification_token": token}, ttl)

    if not cache.is_available:
        # the link could never resolve, so no mail goes out
        log_auth_event("REGISTER verification email", email=email, error="transient store unavailable")
        message = (
            f"Registration received for {email}, but the verification email cannot be sent right now. "
            "Please try again later."
        )
        return {"message": message, "user": {"username": data.username, "email": email}}

    message = f"Registration received for {email}. Please check your mail for the verification link."
    try:
        await asyncio.to_thread(
            send_verification_email, email, data.username, build_verification_link(token)
        )
    except EmailDeliveryError as e:
        log_auth_event("REGISTER verification email", email=email, error=str(e))
        if settings.EMAIL_DELIVERY_REQUIRED:
            await _retire_pending(cache, token, email)
            raise InternalServerException(detail="Failed to send verification email")
        message = (
            f"Registration received for {email}, but the verification email could not be sent. "
            "Please request a new verification link."
        )
    else:
        log_auth_event("REGISTER pending verification", email=email)

    return {"message": message, "user": {"username": data.username, "email": email}}


async def verify_email(db: Session, cache: RedisCache, token: Optional[str]) -> dict:
    """
    Turn a pending registration into a durable, verified user.

    A token is usable once: the pending record is removed on success, so
    a replay finds nothing and gets NotFoundException. If the user cannot
    be created the pending record is left alone and the link can be
    retried.
    """
    if not token:
        raise ValidationException(detail="Verification token is required.")

    try:
        claims = decode_verification_token(token)
    except TokenExpiredError:
        raise TokenExpiredException(detail="Verification link has expired. Please request a new one.")
    except InvalidTokenError as e:
        logger.warning(f"[VerifyEmail] Rejected token: {e}")
        raise ValidationException(detail="Invalid verification token.")

    pending = await cache.get(pending_token_key(token))
    if not pending:
        raise NotFoundException(detail="Invalid or expired verification token.")

    email = pending.get("email")
    if email != claims["email"]:
        log_auth_event("VERIFY", email=claims["email"], error="token does not match pending registration")
        raise ValidationException(detail="Verification token does not match the pending registration.")

    if await asyncio.to_thread(get_user_by_email, db, email):
        raise ConflictException(detail="An account with this email already exists. Please log in.")

    user = await asyncio.to_thread(
        create_user, db, pending["username"], email, pending["password_hash"], True
    )

    await _retire_pending(cache, token, email)
    log_auth_event("VERIFY email verified", email=email, user_id=user.id)

    return {
        "message": "Email verified successfully!",
        "user": {"id": user.id, "username": user.username, "email": user.email},
    }


async def update_profile_guarded(db: Session, cache: RedisCache, user: User, changes: dict) -> User:
    """
    Profile update that also respects the pending_email index.

    A new email that is waiting on someone else's verification link is
    reported as taken, the same as an email owned by a durable user.
    """
    new_email = changes.get("email")
    if new_email and new_email != user.email and await cache.get(pending_email_key(new_email)):
        log_auth_event("PROFILE email change", user_id=user.id, error="email has a pending registration")
        raise ConflictException(detail="Email already in use")
    return await asyncio.to_thread(update_profile, db, user, changes)
