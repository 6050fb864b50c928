"""User account operations on top of the ``users`` table."""

from __future__ import annotations

import logging
from typing import Mapping

from sqlalchemy.exc import IntegrityError

from models import db
from models.user import User

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base class for user service failures."""


class UserNotFoundError(UserServiceError):
    pass


class EmailAlreadyExistsError(UserServiceError):
    pass


class InvalidCredentialsError(UserServiceError):
    pass


UPDATABLE_FIELDS = ("name", "email", "role")


def _commit_unique_email(email: str) -> None:
    # The unique index on users.email decides; no read-before-write.
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise EmailAlreadyExistsError(f"A user with email {email} already exists.") from exc


def create_user(name: str, email: str, password: str, role: str = "user") -> User:
    """Persist a new user with a hashed password."""

    user = User(name=name, email=email, role=role)
    user.set_password(password)
    db.session.add(user)
    _commit_unique_email(email)
    logger.info("User created: id=%s email=%s role=%s", user.id, user.email, user.role)
    return user


def authenticate_user(email: str, password: str) -> User:
    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password):
        raise InvalidCredentialsError("Invalid email or password.")
    return user


def get_all_users() -> list[User]:
    return User.query.order_by(User.id.asc()).all()


def get_user_by_id(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if user is None:
        raise UserNotFoundError(f"User {user_id} not found.")
    return user


def update_user(user_id: int, changes: Mapping[str, object]) -> User:
    """Apply ``changes`` to a user and refresh its update timestamp."""

    user = get_user_by_id(user_id)
    for key in UPDATABLE_FIELDS:
        if key in changes:
            setattr(user, key, changes[key])
    user.touch()
    _commit_unique_email(str(changes.get("email", user.email)))
    logger.info("User updated: id=%s fields=%s", user.id, sorted(changes))
    return user


def delete_user(user_id: int) -> None:
    user = get_user_by_id(user_id)
    email = user.email
    db.session.delete(user)
    db.session.commit()
    logger.info("User deleted: id=%s email=%s", user_id, email)
