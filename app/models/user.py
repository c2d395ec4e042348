"""User model"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON
from sqlalchemy.orm import deferred
from sqlalchemy.sql import func
from enum import Enum
from app.db.base import Base


class Theme(str, Enum):
    """Editor theme preference"""
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


def default_preferences() -> dict:
    return {"theme": Theme.AUTO.value, "default_folder": None}


class User(Base):
    """
    Durable user record.

    Rows are only written once an email address has been confirmed, so for
    accounts created through registration ``is_verified`` is always true.
    ``hashed_password`` and ``refresh_token`` are deferred: a plain query
    never loads them, callers that need them must ask explicitly.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    username = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = deferred(Column(String(255), nullable=False))

    avatar = Column(String(500), nullable=True)
    preferences = Column(JSON, nullable=False, default=default_preferences)

    refresh_token = deferred(Column(String(1024), nullable=True))
    is_verified = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=func.now(), nullable=True)

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}', verified={self.is_verified})>"
