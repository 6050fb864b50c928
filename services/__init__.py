"""Business logic for user accounts."""

from .users import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    UserNotFoundError,
    authenticate_user,
    create_user,
    delete_user,
    get_all_users,
    get_user_by_id,
    update_user,
)

__all__ = [
    "EmailAlreadyExistsError",
    "InvalidCredentialsError",
    "UserNotFoundError",
    "authenticate_user",
    "create_user",
    "delete_user",
    "get_all_users",
    "get_user_by_id",
    "update_user",
]
