"""Users blueprint: listing, lookup, update and deletion of accounts."""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request
from flask_jwt_extended import jwt_required
from werkzeug.exceptions import Conflict, Forbidden, NotFound, Unauthorized

from schemas import UpdateUserSchema, UserIdSchema
from services import (
    EmailAlreadyExistsError,
    UserNotFoundError,
    delete_user,
    get_all_users,
    get_user_by_id,
    update_user,
)
from utils.request_validation import validate_data, validate_json
from utils.session import Identity, current_identity

users_bp = Blueprint("users", __name__)
logger = logging.getLogger(__name__)


def _require_identity() -> Identity:
    identity = current_identity()
    if identity is None:
        raise Unauthorized("Authentication required.")
    return identity


def _parse_user_id(raw_id: str) -> int:
    return validate_data(UserIdSchema, {"id": raw_id}).id


@users_bp.route("", methods=["GET"])
@jwt_required()
def fetch_all_users():
    users = get_all_users()
    logger.info("Users listed: count=%s", len(users))
    return jsonify(
        {
            "message": "Successfully retrieved users.",
            "users": [user.to_dict() for user in users],
            "count": len(users),
        }
    )


@users_bp.route("/<raw_id>", methods=["GET"])
@jwt_required()
def fetch_user_by_id(raw_id: str):
    user_id = _parse_user_id(raw_id)
    try:
        user = get_user_by_id(user_id)
    except UserNotFoundError as exc:
        raise NotFound("User not found.") from exc
    return jsonify({"message": "User retrieved successfully.", "user": user.to_dict()})


@users_bp.route("/<raw_id>", methods=["PUT"])
@jwt_required()
def update_user_by_id(raw_id: str):
    """Update a user.

    Non-admins may only change their own record and never its role.
    """

    user_id = _parse_user_id(raw_id)
    payload = validate_json(request, UpdateUserSchema, allow_empty=True)
    changes = payload.changes()
    caller = _require_identity()

    if not caller.is_admin and caller.id != user_id:
        logger.warning("Update denied, not the owner: caller=%s target=%s", caller.id, user_id)
        raise Forbidden("You can only update your own information.")
    if not caller.is_admin and "role" in changes:
        logger.warning("Update denied, role change by non-admin: caller=%s target=%s", caller.id, user_id)
        raise Forbidden("Only admin users can change user roles.")

    try:
        user = update_user(user_id, changes)
    except UserNotFoundError as exc:
        raise NotFound("User not found.") from exc
    except EmailAlreadyExistsError as exc:
        raise Conflict("A user with that email already exists.") from exc

    return jsonify({"message": "User updated successfully.", "user": user.to_dict()})


@users_bp.route("/<raw_id>", methods=["DELETE"])
@jwt_required()
def delete_user_by_id(raw_id: str):
    """Delete a user. Admin only, and never the admin's own account."""

    user_id = _parse_user_id(raw_id)
    caller = _require_identity()

    if not caller.is_admin:
        logger.warning("Delete denied, not an admin: caller=%s target=%s", caller.id, user_id)
        raise Forbidden("Only admin users can delete users.")
    if caller.id == user_id:
        logger.warning("Delete denied, admin deleting self: caller=%s", caller.id)
        raise Forbidden("You cannot delete your own account.")

    try:
        delete_user(user_id)
    except UserNotFoundError as exc:
        raise NotFound("User not found.") from exc

    return jsonify({"message": "User deleted successfully."})
