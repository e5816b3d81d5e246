"""CRUD-style helpers for managing user accounts."""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from inkwell.core import security
from inkwell.core.errors import BadRequestError, ConflictError, NotFoundError
from inkwell.models.user import User
from inkwell.schemas.user import UserUpdate

__all__ = [
    "get_user",
    "get_user_or_404",
    "get_user_by_username",
    "find_by_identifier",
    "list_users",
    "create_user",
    "update_profile",
    "set_role",
]


def get_user(db: Session, user_id: int) -> User | None:
    """Return a single user by primary key."""
    return db.query(User).filter(User.id == user_id).first()


def get_user_or_404(db: Session, user_id: int) -> User:
    user = get_user(db, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def get_user_by_username(db: Session, username: str) -> User:
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


def find_by_identifier(db: Session, identifier: str) -> User | None:
    """Look a user up by (case-insensitive) email or by exact username."""
    identifier = identifier.strip()
    return (
        db.query(User)
        .filter(or_(User.email == identifier.lower(), User.username == identifier))
        .first()
    )


def list_users(db: Session, page: int = 1, limit: int = 20) -> tuple[Sequence[User], int]:
    """Return one page of users (newest first) and the total count."""
    total = db.query(func.count(User.id)).scalar() or 0
    users = (
        db.query(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return users, int(total)


def create_user(
    db: Session,
    *,
    email: str,
    username: str,
    password: str,
    display_name: str | None = None,
    role: str = "user",
) -> User:
    """Persist a new account with a bcrypt password hash.

    Raises:
        ConflictError: If the email or username is already registered.
    """
    email = email.strip().lower()
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise ConflictError("Email already exists")
    if db.query(User.id).filter(User.username == username).first() is not None:
        raise ConflictError("Username already exists")

    try:
        password_hash = security.hash_password(password)
    except ValueError as err:
        raise BadRequestError(str(err)) from err

    db_user = User(
        email=email,
        username=username,
        password_hash=password_hash,
        display_name=display_name,
        role=role,
    )
    db.add(db_user)
    db.flush()
    return db_user


def update_profile(db: Session, db_user: User, update_data: UserUpdate) -> User:
    """Apply partial profile updates to an existing user."""
    update_dict = update_data.model_dump(exclude_unset=True, mode="json")
    for key, value in update_dict.items():
        setattr(db_user, key, value)

    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def set_role(db: Session, db_user: User, role: str) -> User:
    db_user.role = role
    db.commit()
    db.refresh(db_user)
    return db_user
