"""Pydantic schemas for request/response validation"""
from app.schemas.auth_schemas import (
    RegisterRequest,
    LoginRequest,
    VerifyEmailRequest,
    RegisterResponse,
    VerifyEmailResponse,
    LoginResponse,
    UserPublic,
    UserResponse,
    ProfileUpdate,
    PasswordChange,
    MessageResponse,
)

__all__ = [
    "RegisterRequest",
    "LoginRequest",
    "VerifyEmailRequest",
    "RegisterResponse",
    "VerifyEmailResponse",
    "LoginResponse",
    "UserPublic",
    "UserResponse",
    "ProfileUpdate",
    "PasswordChange",
    "MessageResponse",
]
