"""Authentication and user schemas"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime

from app.models.user import Theme


class RegisterRequest(BaseModel):
    """Schema for a registration request"""
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, v):
        return v.strip() if isinstance(v, str) else v


class LoginRequest(BaseModel):
    """Schema for login request"""
    email: EmailStr
    password: str = Field(..., min_length=1)


class VerifyEmailRequest(BaseModel):
    """Verification token posted in the body instead of the query string"""
    token: Optional[str] = None


class PendingUser(BaseModel):
    username: str
    email: EmailStr


class RegisterResponse(BaseModel):
    message: str
    user: PendingUser


class UserPublic(BaseModel):
    """Identity fields only"""
    id: int
    username: str
    email: EmailStr

    model_config = ConfigDict(from_attributes=True)


class VerifyEmailResponse(BaseModel):
    message: str
    user: UserPublic


class Preferences(BaseModel):
    theme: Theme = Theme.AUTO
    default_folder: Optional[int] = None


class UserResponse(UserPublic):
    """Profile without secrets (no hash, refresh token or verification flag)"""
    avatar: Optional[str] = None
    preferences: Preferences = Field(default_factory=Preferences)
    created_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    """Login response; serialised as ``accessToken``"""
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken")
    user: UserResponse


class ProfileUpdate(BaseModel):
    """Only these keys can be changed through the profile endpoint"""
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    avatar: Optional[str] = Field(None, max_length=500)
    preferences: Optional[Preferences] = None


class PasswordChange(BaseModel):
    """Schema for changing password"""
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=100)


class MessageResponse(BaseModel):
    message: str
