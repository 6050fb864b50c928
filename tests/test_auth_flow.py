"""Tests covering sign-up, sign-in and sign-out."""

from __future__ import annotations

import pytest
from flask.testing import FlaskClient

from conftest import build_app, create_user
from models.user import User

SIGN_UP = {
    "name": "Jane Doe",
    "email": "Jane@Example.com",
    "password": "Secret123",
}


def _session_cookie(response) -> str:
    cookies = [c for c in response.headers.getlist("Set-Cookie") if c.startswith("token=")]
    assert cookies, "session cookie was not set"
    return cookies[0]


def test_sign_up_creates_user_and_sets_cookie(client: FlaskClient, app):
    response = client.post("/api/auth/sign-up", json=SIGN_UP)

    assert response.status_code == 201
    data = response.get_json()
    assert data["user"]["email"] == "jane@example.com"
    assert data["user"]["role"] == "user"
    assert "password" not in data["user"]

    cookie = _session_cookie(response)
    assert "HttpOnly" in cookie
    assert "SameSite=Strict" in cookie
    assert "Max-Age=86400" in cookie

    with app.app_context():
        user = User.query.filter_by(email="jane@example.com").one()
        assert user.password_hash != "Secret123"
        assert user.check_password("Secret123")


def test_sign_up_with_duplicate_email_conflicts(client: FlaskClient, app):
    assert client.post("/api/auth/sign-up", json=SIGN_UP).status_code == 201

    response = client.post(
        "/api/auth/sign-up", json={**SIGN_UP, "email": "jane@example.com", "name": "Other"}
    )

    assert response.status_code == 409
    assert response.get_json()["error"] == "Conflict"
    with app.app_context():
        assert User.query.count() == 1


def test_sign_up_flattens_validation_errors(client: FlaskClient):
    response = client.post(
        "/api/auth/sign-up",
        json={"name": "J", "email": "not-an-email", "password": "123", "role": "root"},
    )

    assert response.status_code == 400
    detail = response.get_json()["detail"]
    assert isinstance(detail, str)
    for field in ("name:", "email:", "password:", "role:"):
        assert field in detail


def test_sign_up_requires_json(client: FlaskClient):
    response = client.post("/api/auth/sign-up", data="not-json", content_type="text/plain")

    assert response.status_code == 400
    payload = response.get_json()
    assert payload["error"] == "Bad Request"
    assert "Request content type" in payload["detail"]
    assert payload["request_id"]


def test_sign_in_returns_user_and_cookie(client: FlaskClient, app):
    create_user(app, "j1@example.com", "J1Pass123", name="J One")

    response = client.post(
        "/api/auth/sign-in",
        json={"email": "J1@example.com", "password": "J1Pass123"},
    )

    assert response.status_code == 200
    data = response.get_json()
    assert data["user"]["email"] == "j1@example.com"
    assert data["user"]["name"] == "J One"
    _session_cookie(response)


@pytest.mark.parametrize(
    "payload, status_code",
    [
        ({"email": "j1@example.com"}, 400),
        ({"password": "J1Pass123"}, 400),
        ({"email": "j1@example.com", "password": "wrong"}, 401),
        ({"email": "nobody@example.com", "password": "J1Pass123"}, 401),
    ],
)
def test_sign_in_validation(client: FlaskClient, app, payload, status_code):
    """Sign-in should validate request bodies and credentials."""

    create_user(app, "j1@example.com", "J1Pass123")

    response = client.post("/api/auth/sign-in", json=payload)

    assert response.status_code == status_code
    assert "Set-Cookie" not in response.headers


def test_sign_in_cookie_authenticates_later_requests(client: FlaskClient, app):
    create_user(app, "j1@example.com", "J1Pass123")
    client.post("/api/auth/sign-in", json={"email": "j1@example.com", "password": "J1Pass123"})

    response = client.get("/api/users")

    assert response.status_code == 200


def test_sign_out_clears_cookie(client: FlaskClient, app):
    create_user(app, "j1@example.com", "J1Pass123")
    client.post("/api/auth/sign-in", json={"email": "j1@example.com", "password": "J1Pass123"})

    response = client.post("/api/auth/sign-out")

    assert response.status_code == 200
    assert _session_cookie(response).startswith("token=;")
    assert client.get("/api/users").status_code == 401


def test_sign_in_is_throttled_per_client():
    app = build_app(SIGN_IN_RATE_LIMIT="2 per minute")
    client = app.test_client()
    body = {"email": "nobody@example.com", "password": "whatever"}

    assert client.post("/api/auth/sign-in", json=body).status_code == 401
    assert client.post("/api/auth/sign-in", json=body).status_code == 401
    response = client.post("/api/auth/sign-in", json=body)

    assert response.status_code == 429
    assert response.get_json()["error"] == "Too Many Requests"
