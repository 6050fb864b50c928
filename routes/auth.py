"""Authentication blueprint providing sign-up, sign-in and sign-out endpoints."""

from __future__ import annotations

import logging
from http import HTTPStatus

from flask import Blueprint, current_app, jsonify, request
from werkzeug.exceptions import Conflict, Unauthorized

from extensions import limiter
from schemas import SignInSchema, SignUpSchema
from services import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    authenticate_user,
    create_user,
)
from utils.request_validation import validate_json
from utils.session import attach_session, clear_session

auth_bp = Blueprint("auth", __name__)
logger = logging.getLogger(__name__)


def _sign_in_limit() -> str:
    return current_app.config.get("SIGN_IN_RATE_LIMIT", "10 per minute")


@auth_bp.route("/sign-up", methods=["POST"])
def sign_up():
    """Register a new user and start a session for them."""

    payload = validate_json(request, SignUpSchema)

    try:
        user = create_user(payload.name, payload.email, payload.password, payload.role)
    except EmailAlreadyExistsError as exc:
        logger.warning("Sign-up rejected, email already registered: email=%s", payload.email)
        raise Conflict("A user with that email already exists.") from exc

    logger.info("User registered: id=%s email=%s", user.id, user.email)
    response = jsonify(
        {
            "message": "User registered successfully.",
            "user": {"id": user.id, "name": user.name, "email": user.email, "role": user.role},
        }
    )
    response.status_code = HTTPStatus.CREATED
    return attach_session(response, user)


@auth_bp.route("/sign-in", methods=["POST"])
@limiter.limit(_sign_in_limit)
def sign_in():
    """Authenticate a user and set the session cookie."""

    payload = validate_json(request, SignInSchema)

    try:
        user = authenticate_user(payload.email, payload.password)
    except InvalidCredentialsError as exc:
        logger.warning("Sign-in failed: email=%s ip=%s", payload.email, request.remote_addr)
        raise Unauthorized("Invalid email or password.") from exc

    logger.info("User signed in: id=%s email=%s", user.id, user.email)
    response = jsonify(
        {
            "message": "User signed in successfully.",
            "user": {"id": user.id, "name": user.name, "email": user.email, "role": user.role},
        }
    )
    return attach_session(response, user)


@auth_bp.route("/sign-out", methods=["POST"])
def sign_out():
    """Clear the session cookie."""

    logger.info("User signed out: ip=%s", request.remote_addr)
    response = jsonify({"message": "User signed out successfully."})
    return clear_session(response)
