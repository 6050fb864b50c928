"""Session tokens carried in an HTTP-only cookie."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from flask import Flask, Response, current_app, g, jsonify, request
from flask_jwt_extended import (
    JWTManager,
    create_access_token,
    get_jwt,
    get_jwt_identity,
    set_access_cookies,
    unset_jwt_cookies,
    verify_jwt_in_request,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """The caller resolved from a verified session token."""

    id: int
    email: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def issue_token(user) -> str:
    """Sign a session token for ``user``."""

    return create_access_token(
        identity=str(user.id),
        additional_claims={"email": user.email, "role": user.role},
    )


def attach_session(response: Response, user) -> Response:
    """Sign a token for ``user`` and set it as the session cookie."""

    expires = current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    set_access_cookies(response, issue_token(user), max_age=int(expires.total_seconds()))
    return response


def clear_session(response: Response) -> Response:
    unset_jwt_cookies(response)
    return response


def current_identity() -> Optional[Identity]:
    """Return the identity of the verified token in the current request, if any."""

    subject = get_jwt_identity()
    if subject is None:
        return None
    claims = get_jwt()
    return Identity(
        id=int(subject),
        email=claims.get("email", ""),
        role=claims.get("role", "user"),
    )


def resolve_optional_identity() -> Optional[Identity]:
    """Resolve the caller without rejecting the request.

    A missing, malformed or expired token yields ``None``.
    """

    try:
        verify_jwt_in_request(optional=True)
        return current_identity()
    except (JWTExtendedException, PyJWTError, ValueError) as exc:
        logger.debug("Ignoring unusable session token: %s", exc)
        return None


def _auth_error(status: int, error: str, detail: str):
    request_id = g.get("request_id")
    logger.warning(
        "Authentication rejected: status=%s detail=%r method=%s path=%s ip=%s request_id=%s",
        status,
        detail,
        request.method,
        request.path,
        request.remote_addr,
        request_id,
    )
    response = jsonify({"error": error, "detail": detail, "request_id": request_id})
    response.status_code = status
    return response


def init_session(app: Flask, jwt: JWTManager) -> None:
    """Bind the JWT manager to ``app`` and register JSON rejection handlers."""

    jwt.init_app(app)

    @jwt.unauthorized_loader
    def _missing_token(reason: str):
        return _auth_error(401, "Unauthorized", "No access token provided.")

    @jwt.invalid_token_loader
    def _invalid_token(reason: str):
        return _auth_error(401, "Unauthorized", "Invalid or expired token.")

    @jwt.expired_token_loader
    def _expired_token(jwt_header: dict, jwt_payload: dict):
        return _auth_error(401, "Unauthorized", "Invalid or expired token.")

    @jwt.revoked_token_loader
    def _revoked_token(jwt_header: dict, jwt_payload: dict):
        return _auth_error(401, "Unauthorized", "Invalid or expired token.")

    @jwt.user_lookup_error_loader
    def _unknown_subject(jwt_header: dict, jwt_payload: dict):
        return _auth_error(401, "Unauthorized", "Invalid or expired token.")
