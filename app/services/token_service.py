"""Signed, time-limited tokens (JWT)"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.errors.exceptions import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)

VERIFICATION = "verification"
ACCESS = "access"
REFRESH = "refresh"


def issue_token(claims: dict, secret: str, expires_delta: timedelta) -> str:
    """
    Sign *claims* with *secret*, adding an ``exp`` claim *expires_delta*
    from now
    """
    to_encode = claims.copy()
    now = datetime.now(timezone.utc)
    to_encode.update({"iat": now, "exp": now + expires_delta})
    return jwt.encode(to_encode, secret, algorithm=settings.ALGORITHM)


def decode_token(token: str, secret: str, token_type: Optional[str] = None) -> dict:
    """
    Validate *token* and return its claims.

    Raises TokenExpiredError when the token is past its expiry and
    InvalidTokenError for anything else (bad signature, garbage, wrong type).
    """
    if not token or not isinstance(token, str):
        raise InvalidTokenError("empty token")
    try:
        payload = jwt.decode(token.strip(), secret, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError as e:
        raise TokenExpiredError(str(e)) from e
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    if token_type is not None and payload.get("type") != token_type:
        raise InvalidTokenError(f"expected a {token_type} token")
    return payload


# ── purpose helpers ───────────────────────────────────────────────────────────

def create_verification_token(email: str, username: str) -> str:
    return issue_token(
        {"email": email, "username": username, "type": VERIFICATION},
        settings.ACCESS_TOKEN_SECRET,
        timedelta(minutes=settings.VERIFICATION_TOKEN_EXPIRE_MINUTES),
    )


def create_access_token(user_id: int) -> str:
    return issue_token(
        {"sub": str(user_id), "type": ACCESS},
        settings.ACCESS_TOKEN_SECRET,
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(user_id: int) -> str:
    return issue_token(
        {"sub": str(user_id), "type": REFRESH},
        settings.REFRESH_TOKEN_SECRET,
        timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_verification_token(token: str) -> dict:
    payload = decode_token(token, settings.ACCESS_TOKEN_SECRET, VERIFICATION)
    if not payload.get("email") or not payload.get("username"):
        raise InvalidTokenError("verification token is missing claims")
    return payload


def _user_id(payload: dict) -> int:
    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError) as e:
        raise InvalidTokenError("token subject is not a user id") from e


def decode_access_token(token: str) -> int:
    """Return the user id carried by a valid access token"""
    return _user_id(decode_token(token, settings.ACCESS_TOKEN_SECRET, ACCESS))


def decode_refresh_token(token: str) -> int:
    """Return the user id carried by a valid refresh token"""
    return _user_id(decode_token(token, settings.REFRESH_TOKEN_SECRET, REFRESH))
