"""Durable user store (SQLAlchemy)"""
import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, undefer

from app.errors.exceptions import (
    BadRequestException,
    ConflictException,
    DatabaseException,
    NotFoundException,
)
from app.models.user import User, default_preferences
from app.services.password_service import get_password_hash, verify_password

logger = logging.getLogger(__name__)


def get_user_by_email(db: Session, email: str, with_secrets: bool = False) -> Optional[User]:
    """
    Get user by email.

    The password hash and refresh token are only loaded when *with_secrets*
    is set.
    """
    query = db.query(User).filter(User.email == email)
    if with_secrets:
        query = query.options(undefer(User.hashed_password), undefer(User.refresh_token))
    return query.first()


def get_user_by_username(db: Session, username: str) -> Optional[User]:
    return db.query(User).filter(User.username == username).first()


def get_user_by_id(db: Session, user_id: int, with_secrets: bool = False) -> Optional[User]:
    query = db.query(User).filter(User.id == user_id)
    if with_secrets:
        query = query.options(undefer(User.hashed_password), undefer(User.refresh_token))
    return query.first()


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.warning(f"Uniqueness violation while trying to {action}: {e.orig}")
        raise ConflictException(detail="Username or email already in use")
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while trying to {action}: {e}")
        raise DatabaseException()


def create_user(
    db: Session,
    username: str,
    email: str,
    hashed_password: str,
    is_verified: bool = False,
) -> User:
    """
    Insert a user from an already hashed password.

    Raises ConflictException if the username or email is taken.
    """
    db_user = User(
        username=username,
        email=email,
        hashed_password=hashed_password,
        preferences=default_preferences(),
        is_verified=is_verified,
    )
    db.add(db_user)
    _commit(db, f"create user {email}")
    db.refresh(db_user)
    return db_user


def update_user(db: Session, user: User, fields: dict) -> User:
    """Apply *fields* to *user* and persist them in one commit"""
    for key, value in fields.items():
        setattr(user, key, value)
    _commit(db, f"update user {user.id}")
    db.refresh(user)
    return user


# ── profile ───────────────────────────────────────────────────────────────────

def update_profile(db: Session, user: User, changes: dict) -> User:
    """
    Update username / email / avatar / preferences.

    *changes* holds only the keys the client actually sent; anything else
    is ignored.
    """
    allowed = {"username", "email", "avatar", "preferences"}
    fields = {key: value for key, value in changes.items() if key in allowed}
    for not_nullable in ("username", "email", "preferences"):
        if fields.get(not_nullable, "") is None:
            del fields[not_nullable]
    if not fields:
        return user
    return update_user(db, user, fields)


def change_password(db: Session, user_id: int, current_password: str, new_password: str) -> None:
    """Raises BadRequestException when *current_password* is wrong"""
    user = get_user_by_id(db, user_id, with_secrets=True)
    if user is None:
        raise NotFoundException(detail="User not found")
    if not verify_password(current_password, user.hashed_password):
        raise BadRequestException(detail="Current password is incorrect")
    update_user(db, user, {"hashed_password": get_password_hash(new_password)})
