"""Database models"""
from app.models.user import User, Theme

__all__ = ["User", "Theme"]
