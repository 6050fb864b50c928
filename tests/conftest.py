"""Shared pytest fixtures for the application tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from flask import Flask
from flask.testing import FlaskClient

ROOT_DIR = Path(__file__).resolve().parent.parent
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app import create_app  # noqa: E402
from config import Config  # noqa: E402
from models import db  # noqa: E402
from models.user import User  # noqa: E402
from utils.session import issue_token  # noqa: E402


class BaseTestConfig(Config):
    TESTING = True
    IS_PRODUCTION = False
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = "test-secret"
    JWT_COOKIE_SECURE = False
    LOG_DIR = None
    SECURITY_STORAGE_URI = "memory://"
    SECURITY_BASE_RATE_LIMIT = None
    SECURITY_SHIELD_MODE = "LIVE"
    SECURITY_BOT_MODE = "LIVE"
    SECURITY_RATE_LIMIT_MODE = "LIVE"
    SECURITY_FAIL_OPEN = True
    SECURITY_BOT_ALLOW = [
        "CATEGORY:SEARCH_ENGINE",
        "CATEGORY:PREVIEW",
        "PostmanRuntime/*",
        "insomnia/*",
        "curl/*",
        "Thunder Client/*",
    ]
    RATE_LIMIT_POLICIES = {
        "admin": "1000 per minute",
        "user": "1000 per minute",
        "guest": "1000 per minute",
    }
    SIGN_IN_RATE_LIMIT = "1000 per minute"
    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = "memory://"


def build_app(risk_evaluator=None, **overrides) -> Flask:
    """Create an app whose config is ``BaseTestConfig`` plus ``overrides``."""

    class TestConfig(BaseTestConfig):
        pass

    for key, value in overrides.items():
        setattr(TestConfig, key, value)

    application = create_app(TestConfig, risk_evaluator=risk_evaluator)
    with application.app_context():
        db.create_all()
    return application


@pytest.fixture()
def app() -> Flask:
    """Create a Flask application instance for tests."""

    application = build_app()

    yield application

    with application.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Return a test client for the Flask app."""

    return app.test_client()


def create_user(
    app: Flask,
    email: str,
    password: str = "Password123",
    role: str = "user",
    name: str = "Test User",
) -> int:
    """Persist a user and return its id."""

    with app.app_context():
        user = User(name=name, email=email, role=role)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user.id


def login_as(app: Flask, user_id: int) -> FlaskClient:
    """Return a test client carrying a session cookie for ``user_id``."""

    with app.app_context():
        token = issue_token(db.session.get(User, user_id))
    client = app.test_client()
    client.set_cookie("token", token)
    return client
