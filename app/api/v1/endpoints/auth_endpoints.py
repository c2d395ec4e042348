"""Authentication endpoints"""
from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.cache.redis_cache import RedisCache
from app.core.config import settings
from app.core.dependencies import get_cache, get_db
from app.middleware.auth import get_current_user, get_current_verified_user
from app.models.user import User
from app.schemas.auth_schemas import (
    LoginRequest,
    LoginResponse,
    MessageResponse,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
    VerifyEmailRequest,
    VerifyEmailResponse,
)
from app.services.registration_service import register_user, update_profile_guarded, verify_email
from app.services.session_service import authenticate_user
from app.services.user_service import change_password

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: RegisterRequest,
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
):
    """
    ## Register a new account (step 1 of 2)

    **Role:** Public.

    Parks the registration for one hour and emails a verification link.
    No account exists until the link is used.

    ### Required fields (JSON body)
    | Field    | Type   | Description               |
    |----------|--------|---------------------------|
    | username | string | At least 3 characters     |
    | email    | string | Verification link target  |
    | password | string | At least 6 characters     |

    ### Errors
    - 400: missing or malformed field
    - 409: email already in use (account or pending registration), username taken
    """
    return await register_user(db, cache, user_data)


@router.get("/verify-email", response_model=VerifyEmailResponse)
async def verify_email_link(
    token: Optional[str] = Query(None, description="Token from the verification email"),
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
):
    """
    ## Verify email from the emailed link (step 2 of 2)

    Creates the account. Each link works once.

    ### Errors
    - 400: token missing, invalid, or not matching its registration
    - 401: link expired, register again or request a new link
    - 404: no pending registration for this token (already used or expired)
    - 409: an account with this email already exists
    """
    return await verify_email(db, cache, token)


@router.post("/verify-email", response_model=VerifyEmailResponse)
async def verify_email_post(
    body: Optional[VerifyEmailRequest] = Body(None),
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
):
    """Same as the GET variant; the token may come in the JSON body `{token}` or the query."""
    return await verify_email(db, cache, (body.token if body else None) or token)


@router.post("/login", response_model=LoginResponse)
async def login(
    credentials: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
):
    """
    ## Login with email and password

    Returns a 5 minute access token and sets the 7 day refresh token as the
    http-only `jwt` cookie.

    ### Errors
    - 400: missing field
    - 401: invalid credentials
    - 403: email not verified yet
    """
    access_token, refresh_token, user = await authenticate_user(db, cache, credentials)

    response.set_cookie(
        key=settings.REFRESH_COOKIE_NAME,
        value=refresh_token,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        samesite="none",
        secure=settings.COOKIE_SECURE,
    )
    return {"accessToken": access_token, "user": user}


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(current_user: User = Depends(get_current_user)):
    """
    ## Current user's profile

    **Auth:** `Authorization: Bearer <accessToken>`.
    """
    return current_user


@router.put("/profile", response_model=UserResponse)
async def update_current_profile(
    changes: ProfileUpdate,
    current_user: User = Depends(get_current_verified_user),
    db: Session = Depends(get_db),
    cache: RedisCache = Depends(get_cache),
):
    """
    ## Update profile

    Accepts any of `username`, `email`, `avatar`, `preferences`; other keys
    are ignored. 409 when the new username or email is taken, or when the
    email is waiting on a pending registration.
    """
    return await update_profile_guarded(
        db, cache, current_user, changes.model_dump(exclude_unset=True, mode="json")
    )


@router.patch("/password", response_model=MessageResponse)
def update_password(
    password_data: PasswordChange,
    current_user: User = Depends(get_current_verified_user),
    db: Session = Depends(get_db),
):
    """
    ## Change password

    400 when `current_password` is wrong.
    """
    change_password(db, current_user.id, password_data.current_password, password_data.new_password)
    return {"message": "Password updated successfully"}
